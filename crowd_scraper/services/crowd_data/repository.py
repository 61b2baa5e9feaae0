"""
Crowd Data Repository - Cache de leituras de crowd level com TTL.

O Scheduler consome apenas a interface CrowdDataRepository
(get_latest_crowd_data / store_crowd_data). A implementação em memória
mantém histórico por restaurante, expira registros por TTL e roda uma
limpeza periódica opcional.
"""

import asyncio
import itertools
import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Protocol

from crowd_scraper.core.config import settings
from crowd_scraper.services.scraper.models import CrowdLevel, CrowdLevelData

logger = logging.getLogger(__name__)


def restaurant_slug(name: str) -> str:
    """'Joe Pizza' -> 'joe-pizza'"""
    return re.sub(r"\s+", "-", (name or "").strip().lower())


@dataclass
class CrowdDataRecord:
    """Registro persistido de uma leitura."""
    id: int
    restaurant_id: str
    restaurant_name: str
    crowd_level: CrowdLevel
    average_time_spent: str
    last_updated: datetime
    expires_at: datetime
    source: str = "google"
    crowd_percentage: Optional[int] = None
    peak_hours: Optional[tuple] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or datetime.now(timezone.utc)) >= self.expires_at

    def to_crowd_level_data(self) -> CrowdLevelData:
        return CrowdLevelData(
            restaurant_name=self.restaurant_name,
            crowd_level=self.crowd_level,
            crowd_percentage=self.crowd_percentage,
            peak_hours=self.peak_hours,
            average_time_spent=self.average_time_spent,
            last_updated=self.last_updated,
            source=self.source,
        )


class CrowdDataRepository(Protocol):
    """Interface consumida pelo Scheduler."""

    async def get_latest_crowd_data(self, restaurant_id: str) -> Optional[CrowdDataRecord]:
        ...

    async def store_crowd_data(self, data: CrowdLevelData, restaurant_id: Optional[str] = None) -> CrowdDataRecord:
        ...


class InMemoryCrowdDataRepository:
    """
    Repositório em memória com TTL.

    Features:
    - Histórico por restaurante (mais recente por last_updated)
    - Expiração por TTL + limpeza periódica (start_cleanup)
    - Estatísticas por crowd level
    """

    def __init__(
        self,
        ttl: Optional[float] = None,
        max_historical_records: Optional[int] = None,
    ):
        """
        Args:
            ttl: Tempo de vida de um registro (segundos)
            max_historical_records: Limite de registros retornados no histórico
        """
        self._ttl = ttl if ttl is not None else settings.CROWD_DATA_TTL
        self._max_historical_records = (
            max_historical_records if max_historical_records is not None
            else settings.CROWD_DATA_MAX_HISTORICAL_RECORDS
        )
        self._records: Dict[str, List[CrowdDataRecord]] = {}
        self._ids = itertools.count(1)
        self._cleanup_task: Optional[asyncio.Task] = None

        logger.info(
            f"[CrowdRepo] ttl={self._ttl / 3600:.1f}h, "
            f"max_historical_records={self._max_historical_records}"
        )

    async def store_crowd_data(self, data: CrowdLevelData, restaurant_id: Optional[str] = None) -> CrowdDataRecord:
        """Armazena uma leitura; expires_at = agora + TTL."""
        name = data.restaurant_name or restaurant_id or ""
        if not name:
            raise ValueError("restaurant_name or restaurant_id is required")

        now = datetime.now(timezone.utc)
        record = CrowdDataRecord(
            id=next(self._ids),
            restaurant_id=restaurant_id or restaurant_slug(name),
            restaurant_name=name,
            crowd_level=data.crowd_level,
            crowd_percentage=data.crowd_percentage,
            peak_hours=data.peak_hours,
            average_time_spent=data.average_time_spent,
            last_updated=data.last_updated,
            expires_at=now + timedelta(seconds=self._ttl),
            source=data.source,
            created_at=now,
        )
        self._records.setdefault(record.restaurant_id, []).append(record)
        logger.info(
            f"[CrowdRepo] Armazenado {record.restaurant_id} ({record.crowd_level.value}), "
            f"expira em {record.expires_at.isoformat()}"
        )
        return record

    def _sorted(self, records: List[CrowdDataRecord]) -> List[CrowdDataRecord]:
        return sorted(records, key=lambda r: (r.last_updated, r.id), reverse=True)

    async def get_latest_crowd_data(self, restaurant_id: str) -> Optional[CrowdDataRecord]:
        records = self._records.get(restaurant_id)
        if not records:
            return None
        return self._sorted(records)[0]

    async def get_crowd_data_by_name(self, restaurant_name: str) -> Optional[CrowdDataRecord]:
        matches = [
            r for records in self._records.values() for r in records
            if r.restaurant_name == restaurant_name
        ]
        return self._sorted(matches)[0] if matches else None

    async def get_historical_crowd_data(self, restaurant_id: str, limit: int = 10) -> List[CrowdDataRecord]:
        actual_limit = min(limit, self._max_historical_records)
        return self._sorted(self._records.get(restaurant_id, []))[:actual_limit]

    async def delete_expired_data(self) -> int:
        """Remove registros expirados. Retorna quantos foram removidos."""
        now = datetime.now(timezone.utc)
        deleted = 0
        for restaurant_id in list(self._records):
            kept = [r for r in self._records[restaurant_id] if not r.is_expired(now)]
            deleted += len(self._records[restaurant_id]) - len(kept)
            if kept:
                self._records[restaurant_id] = kept
            else:
                del self._records[restaurant_id]
        logger.info(f"[CrowdRepo] 🧹 {deleted} registros expirados removidos")
        return deleted

    async def get_statistics(self) -> dict:
        counts = Counter(r.crowd_level for records in self._records.values() for r in records)
        return {
            "total_records": sum(counts.values()),
            "restaurants": len(self._records),
            "busy_count": counts[CrowdLevel.BUSY],
            "moderate_count": counts[CrowdLevel.MODERATE],
            "not_busy_count": counts[CrowdLevel.NOT_BUSY],
            "unknown_count": counts[CrowdLevel.UNKNOWN],
        }

    async def _cleanup_loop(self, interval: float):
        while True:
            await asyncio.sleep(interval)
            try:
                await self.delete_expired_data()
            except Exception as e:
                logger.error(f"[CrowdRepo] Erro na limpeza periódica: {e}", exc_info=True)

    def start_cleanup(self, interval: Optional[float] = None) -> None:
        """Inicia a limpeza periódica (requer event loop rodando)."""
        if self._cleanup_task and not self._cleanup_task.done():
            return
        interval = interval if interval is not None else settings.CROWD_DATA_CLEANUP_INTERVAL
        self._cleanup_task = asyncio.create_task(self._cleanup_loop(interval))
        logger.info(f"[CrowdRepo] Limpeza periódica a cada {interval}s")

    async def stop_cleanup(self) -> None:
        if self._cleanup_task is None:
            return
        self._cleanup_task.cancel()
        try:
            await self._cleanup_task
        except asyncio.CancelledError:
            pass
        self._cleanup_task = None
