"""
Modelos do Scheduler: prioridades, estados e jobs de scraping.
"""

import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from crowd_scraper.core.config import settings
from crowd_scraper.services.scraper.models import ScrapingResult


class ScrapingPriority(str, Enum):
    """Prioridade de um job (uma fila por nível)."""
    HIGH = "high"       # Execução imediata ou quase
    MEDIUM = "medium"   # Prioridade padrão
    LOW = "low"         # Background


class JobStatus(str, Enum):
    """
    Máquina de estados do job:

    PENDING -> RUNNING -> COMPLETED | FAILED
    RUNNING -> PENDING (retry com backoff)
    PENDING | RUNNING -> CANCELLED
    """
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED)


HIGH_POPULARITY_THRESHOLD = 80
MEDIUM_POPULARITY_THRESHOLD = 50


def priority_for_popularity(popularity: Optional[float]) -> ScrapingPriority:
    """Popularidade (0-100) -> prioridade."""
    if popularity is not None and popularity >= HIGH_POPULARITY_THRESHOLD:
        return ScrapingPriority.HIGH
    if popularity is not None and popularity >= MEDIUM_POPULARITY_THRESHOLD:
        return ScrapingPriority.MEDIUM
    return ScrapingPriority.LOW


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_job_id() -> str:
    return f"job_{int(time.time() * 1000)}_{uuid.uuid4().hex[:7]}"


@dataclass
class ScrapingTarget:
    """Restaurante a ser monitorado."""
    id: str
    name: str
    location: Optional[str] = None
    last_scraped: Optional[datetime] = None
    popularity: Optional[float] = None  # 0-100


@dataclass
class ScrapingJob:
    """Um job agendado, com estado próprio de retry/backoff."""
    target: ScrapingTarget
    priority: ScrapingPriority
    max_retries: int
    scheduled_for: datetime = field(default_factory=utcnow)
    id: str = field(default_factory=new_job_id)
    status: JobStatus = JobStatus.PENDING
    created_at: datetime = field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    result: Optional[ScrapingResult] = None
    retry_count: int = 0
    last_error: Optional[str] = None


@dataclass
class SchedulerConfig:
    """Configuração do Scheduler. Intervalos e delays em segundos."""
    max_concurrent_jobs: int
    high_priority_interval: float
    medium_priority_interval: float
    low_priority_interval: float
    popular_restaurants_interval: float
    max_retries: int
    retry_delay_base: float
    batch_size: int
    max_proxy_usage_per_batch: int
    freshness_window: float = 0.0  # 0 = sempre faz scraping

    @classmethod
    def from_settings(cls) -> "SchedulerConfig":
        return cls(
            max_concurrent_jobs=settings.SCHEDULER_MAX_CONCURRENT_JOBS,
            high_priority_interval=settings.SCHEDULER_HIGH_PRIORITY_INTERVAL,
            medium_priority_interval=settings.SCHEDULER_MEDIUM_PRIORITY_INTERVAL,
            low_priority_interval=settings.SCHEDULER_LOW_PRIORITY_INTERVAL,
            popular_restaurants_interval=settings.SCHEDULER_POPULAR_RESTAURANTS_INTERVAL,
            max_retries=settings.SCHEDULER_MAX_RETRIES,
            retry_delay_base=settings.SCHEDULER_RETRY_DELAY_BASE,
            batch_size=settings.SCHEDULER_BATCH_SIZE,
            max_proxy_usage_per_batch=settings.SCHEDULER_MAX_PROXY_USAGE_PER_BATCH,
            freshness_window=settings.SCHEDULER_FRESHNESS_WINDOW,
        )

    def interval_for(self, priority: ScrapingPriority) -> float:
        return {
            ScrapingPriority.HIGH: self.high_priority_interval,
            ScrapingPriority.MEDIUM: self.medium_priority_interval,
            ScrapingPriority.LOW: self.low_priority_interval,
        }[priority]
