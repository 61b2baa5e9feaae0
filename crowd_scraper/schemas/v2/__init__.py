"""
Schemas Pydantic da API v2.
"""
from .crowd import (
    CrowdDataRecordResponse,
    CrowdLevelDataSchema,
    CrowdScrapeRequest,
    PeakHourSchema,
    ScrapingResultResponse,
)
from .jobs import (
    CancelJobResponse,
    JobBatchRequest,
    JobCreateRequest,
    ScrapingJobResponse,
    ScrapingTargetSchema,
)
from .proxies import ProxyStatsResponse

__all__ = [
    # Crowd
    "CrowdDataRecordResponse",
    "CrowdLevelDataSchema",
    "CrowdScrapeRequest",
    "PeakHourSchema",
    "ScrapingResultResponse",
    # Jobs
    "CancelJobResponse",
    "JobBatchRequest",
    "JobCreateRequest",
    "ScrapingJobResponse",
    "ScrapingTargetSchema",
    # Proxies
    "ProxyStatsResponse",
]
