"""
Modelos de dados para o módulo de scraping de crowd level.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Tuple


class CrowdLevel(str, Enum):
    """Classificação de lotação de um estabelecimento."""
    BUSY = "busy"
    MODERATE = "moderate"
    NOT_BUSY = "not_busy"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class PeakHour:
    """Horário de pico (level nunca é UNKNOWN)."""
    day: str
    hour: int
    level: CrowdLevel


@dataclass(frozen=True)
class CrowdLevelData:
    """Leitura normalizada de um scrape. Imutável após criada."""
    crowd_level: CrowdLevel
    average_time_spent: str
    last_updated: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    restaurant_name: Optional[str] = None
    crowd_percentage: Optional[int] = None
    peak_hours: Optional[Tuple[PeakHour, ...]] = None
    source: str = "google"


@dataclass
class ScrapingResult:
    """Envelope do resultado de um scrape."""
    success: bool
    data: Optional[CrowdLevelData] = None
    error: Optional[str] = None
    retry_count: int = 0
