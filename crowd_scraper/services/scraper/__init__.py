"""
Scraper - Aquisição de crowd level a partir da SERP do Google.

Módulos:
- models: CrowdLevel, CrowdLevelData, ScrapingResult
- crowd_extractor: parsing do HTML renderizado (widget "Popular times")
- scraper_service: chamada ao provider SERP com retry, proxy e batch
"""

from .models import (
    CrowdLevel,
    CrowdLevelData,
    PeakHour,
    ScrapingResult,
)
from .crowd_extractor import (
    classify_busyness,
    extract_crowd_data_from_page,
)
from .scraper_service import (
    ScraperConfig,
    ScraperService,
    build_search_query,
)

__all__ = [
    # Models
    "CrowdLevel",
    "CrowdLevelData",
    "PeakHour",
    "ScrapingResult",
    # Extraction
    "classify_busyness",
    "extract_crowd_data_from_page",
    # Service
    "ScraperConfig",
    "ScraperService",
    "build_search_query",
]
