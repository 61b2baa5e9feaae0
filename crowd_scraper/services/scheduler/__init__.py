"""
Scheduler - Agendamento de jobs de scraping por prioridade.
"""

from .models import (
    JobStatus,
    SchedulerConfig,
    ScrapingJob,
    ScrapingPriority,
    ScrapingTarget,
    priority_for_popularity,
)
from .scheduler import ScrapingScheduler

__all__ = [
    # Models
    "JobStatus",
    "SchedulerConfig",
    "ScrapingJob",
    "ScrapingPriority",
    "ScrapingTarget",
    "priority_for_popularity",
    # Scheduler
    "ScrapingScheduler",
]
