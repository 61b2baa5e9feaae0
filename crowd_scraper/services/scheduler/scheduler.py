"""
Scraping Scheduler - Filas por prioridade com execução periódica.

Modelo:
- Três filas (high/medium/low), cada uma drenada por uma task periódica
- Limite global de jobs simultâneos (slots)
- Retry com backoff exponencial por job (retry_delay_base * 2^(n-1))
- Jobs HIGH com horário vencido disparam um drain imediato
- Repositório opcional: leituras recentes evitam novo scraping e
  resultados de sucesso são persistidos
"""

import asyncio
import inspect
import logging
from dataclasses import asdict, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Union

from crowd_scraper.services.crowd_data.repository import CrowdDataRepository
from crowd_scraper.services.scraper.models import ScrapingResult
from crowd_scraper.services.scraper.scraper_service import ScraperService

from .models import (
    JobStatus,
    SchedulerConfig,
    ScrapingJob,
    ScrapingPriority,
    ScrapingTarget,
    priority_for_popularity,
    utcnow,
)

logger = logging.getLogger(__name__)

JobCallback = Callable[[ScrapingJob], Union[None, Awaitable[None]]]

POPULAR_TIMER = "popular_restaurants"


class ScrapingScheduler:
    """
    Agenda e executa jobs de scraping de crowd level.

    Features:
    - Filas por prioridade com drain periódico (intervalo em segundos)
    - Slots de concorrência compartilhados entre as filas
    - Cancelamento cooperativo (jobs em andamento não são interrompidos)
    - Histórico de jobs finalizados + callback de conclusão
    """

    def __init__(
        self,
        scraper: ScraperService,
        repository: Optional[CrowdDataRepository] = None,
        config: Optional[SchedulerConfig] = None,
    ):
        """
        Args:
            scraper: Serviço usado para extrair o crowd level
            repository: Cache de leituras (opcional)
            config: Configuração (default: variáveis de ambiente)
        """
        self._scraper = scraper
        self._repository = repository
        self._config = config if config is not None else SchedulerConfig.from_settings()

        self._queues: Dict[ScrapingPriority, List[ScrapingJob]] = {
            priority: [] for priority in ScrapingPriority
        }
        self._active_jobs: Dict[str, ScrapingJob] = {}
        self._job_history: List[ScrapingJob] = []

        self._timers: Dict[str, asyncio.Task] = {}
        self._job_tasks: Set[asyncio.Task] = set()
        # Jobs cancelados com scrape ainda em andamento: ocupam slot até terminar
        self._cancelled_in_flight: Set[str] = set()
        self._popular_restaurants: Optional[List[ScrapingTarget]] = None
        self._on_job_completed: Optional[JobCallback] = None
        self._running = False

        logger.info(
            f"[Scheduler] max_concurrent_jobs={self._config.max_concurrent_jobs}, "
            f"max_retries={self._config.max_retries}, "
            f"retry_delay_base={self._config.retry_delay_base}s, "
            f"batch_size={self._config.batch_size}"
        )

    @property
    def config(self) -> SchedulerConfig:
        return self._config

    @property
    def is_running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # Ciclo de vida
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Inicia as tasks periódicas (uma por prioridade + populares)."""
        if self._running:
            logger.warning("[Scheduler] Já está rodando")
            return

        self._running = True
        self._start_timers()
        logger.info("[Scheduler] ✅ Iniciado")

    async def stop(self) -> None:
        """
        Para as tasks periódicas.

        Jobs em andamento continuam até terminar; use wait_for_idle()
        para aguardá-los.
        """
        if not self._running:
            return

        self._running = False
        await self._cancel_timers()
        logger.info("[Scheduler] Parado")

    async def wait_for_idle(self) -> None:
        """Aguarda todos os jobs despachados terminarem."""
        while self._job_tasks:
            await asyncio.gather(*list(self._job_tasks), return_exceptions=True)

    def _start_timers(self) -> None:
        for priority in ScrapingPriority:
            self._timers[priority.value] = asyncio.create_task(
                self._queue_loop(priority, self._config.interval_for(priority))
            )
        if self._popular_restaurants is not None:
            self._install_popular_timer()

    async def _cancel_timers(self) -> None:
        timers = list(self._timers.values())
        self._timers.clear()
        for task in timers:
            task.cancel()
        await asyncio.gather(*timers, return_exceptions=True)

    async def _queue_loop(self, priority: ScrapingPriority, interval: float):
        while True:
            await asyncio.sleep(interval)
            try:
                self.process_queue(priority)
            except Exception as e:
                logger.error(f"[Scheduler] Erro no drain da fila {priority.value}: {e}", exc_info=True)

    async def _popular_loop(self, interval: float):
        while True:
            await asyncio.sleep(interval)
            try:
                self._submit_popular_restaurants()
            except Exception as e:
                logger.error(f"[Scheduler] Erro reagendando restaurantes populares: {e}", exc_info=True)

    def _install_popular_timer(self) -> None:
        existing = self._timers.pop(POPULAR_TIMER, None)
        if existing is not None:
            existing.cancel()
        self._timers[POPULAR_TIMER] = asyncio.create_task(
            self._popular_loop(self._config.popular_restaurants_interval)
        )

    # ------------------------------------------------------------------
    # Agendamento
    # ------------------------------------------------------------------

    def schedule_job(
        self,
        target: ScrapingTarget,
        priority: ScrapingPriority = ScrapingPriority.MEDIUM,
        scheduled_for: Optional[datetime] = None,
    ) -> ScrapingJob:
        """
        Cria um job PENDING e coloca na fila da prioridade.

        Args:
            target: Restaurante
            priority: Fila de destino
            scheduled_for: Horário mínimo de execução (default: agora;
                datetime sem timezone é interpretado como UTC)

        Returns:
            O job criado
        """
        if scheduled_for is not None and scheduled_for.tzinfo is None:
            scheduled_for = scheduled_for.replace(tzinfo=timezone.utc)

        job = ScrapingJob(
            target=target,
            priority=priority,
            max_retries=self._config.max_retries,
            scheduled_for=scheduled_for or utcnow(),
        )
        self._queues[priority].append(job)
        logger.info(f"[Scheduler] Job {job.id} agendado: {target.name} ({priority.value})")

        if priority == ScrapingPriority.HIGH and job.scheduled_for <= utcnow():
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                loop = None
            if loop is not None:
                loop.call_soon(self.process_queue, ScrapingPriority.HIGH)

        return job

    def schedule_batch(
        self,
        targets: List[ScrapingTarget],
        priority: ScrapingPriority = ScrapingPriority.MEDIUM,
    ) -> List[ScrapingJob]:
        logger.info(f"[Scheduler] Batch de {len(targets)} restaurantes ({priority.value})")
        return [self.schedule_job(target, priority) for target in targets]

    def schedule_popular_restaurants(self, targets: List[ScrapingTarget]) -> None:
        """
        Instala (ou substitui) a atualização recorrente de restaurantes
        populares. A cada ciclo, cada restaurante é reagendado com
        prioridade derivada da popularidade (>=80 high, >=50 medium).
        """
        self._popular_restaurants = list(targets)
        if self._running:
            self._install_popular_timer()
        logger.info(
            f"[Scheduler] Atualização recorrente de {len(targets)} restaurantes populares "
            f"a cada {self._config.popular_restaurants_interval}s"
        )

    def _submit_popular_restaurants(self) -> List[ScrapingJob]:
        targets = self._popular_restaurants or []
        logger.info(f"[Scheduler] Reagendando {len(targets)} restaurantes populares")
        return [
            self.schedule_job(target, priority_for_popularity(target.popularity))
            for target in targets
        ]

    def cancel_job(self, job_id: str) -> bool:
        """
        Cancela um job na fila ou em andamento.

        Returns:
            True se o job foi encontrado e cancelado
        """
        job = self._active_jobs.pop(job_id, None)
        if job is not None:
            self._cancelled_in_flight.add(job_id)
        else:
            for queue in self._queues.values():
                for index, queued in enumerate(queue):
                    if queued.id == job_id:
                        job = queue.pop(index)
                        break
                if job is not None:
                    break

        if job is None:
            return False

        job.status = JobStatus.CANCELLED
        job.completed_at = utcnow()
        self._job_history.append(job)
        logger.info(f"[Scheduler] 🚫 Job {job_id} cancelado ({job.priority.value})")
        return True

    # ------------------------------------------------------------------
    # Execução
    # ------------------------------------------------------------------

    def process_queue(self, priority: ScrapingPriority) -> List[ScrapingJob]:
        """
        Despacha os jobs vencidos de uma fila até o limite de slots livres.

        Os jobs saem da fila e entram em active como RUNNING antes de
        qualquer await; cada um roda na sua própria task.

        Returns:
            Jobs despachados
        """
        queue = self._queues[priority]
        if not queue:
            return []

        available = self._config.max_concurrent_jobs - self._busy_slots()
        if available <= 0:
            logger.debug(f"[Scheduler] Sem slots livres para fila {priority.value}")
            return []

        queue.sort(key=lambda job: job.scheduled_for)
        now = utcnow()
        ready = [job for job in queue if job.scheduled_for <= now][:available]
        if not ready:
            return []

        logger.info(
            f"[Scheduler] Fila {priority.value}: despachando {len(ready)} de {len(queue)} jobs"
        )
        for job in ready:
            queue.remove(job)
            job.status = JobStatus.RUNNING
            job.started_at = utcnow()
            self._active_jobs[job.id] = job

            task = asyncio.create_task(self._run_job(job))
            self._job_tasks.add(task)
            task.add_done_callback(self._job_tasks.discard)

        return ready

    def _busy_slots(self) -> int:
        return len(self._active_jobs) + len(self._cancelled_in_flight)

    async def _fresh_result(self, job: ScrapingJob) -> Optional[ScrapingResult]:
        if self._repository is None or self._config.freshness_window <= 0:
            return None
        try:
            record = await self._repository.get_latest_crowd_data(job.target.id)
        except Exception as e:
            logger.warning(f"[Scheduler] ⚠️ Erro consultando repositório para {job.target.id}: {e}")
            return None
        if record is None:
            return None
        if utcnow() - record.last_updated > timedelta(seconds=self._config.freshness_window):
            return None
        return ScrapingResult(success=True, data=record.to_crowd_level_data())

    async def _store_result(self, job: ScrapingJob, result: ScrapingResult) -> None:
        if self._repository is None or result.data is None:
            return
        try:
            await self._repository.store_crowd_data(result.data, job.target.id)
        except Exception as e:
            logger.error(f"[Scheduler] ❌ Erro armazenando resultado de {job.target.id}: {e}")

    def _discard_if_cancelled(self, job: ScrapingJob) -> bool:
        if job.status != JobStatus.CANCELLED:
            return False
        logger.info(f"[Scheduler] Job {job.id} foi cancelado durante a execução; resultado descartado")
        return True

    async def _run_job(self, job: ScrapingJob) -> None:
        try:
            await self._execute_job(job)
        finally:
            self._cancelled_in_flight.discard(job.id)

    async def _execute_job(self, job: ScrapingJob) -> None:
        logger.info(f"[Scheduler] Executando job {job.id}: {job.target.name}")

        from_cache = False
        try:
            result = await self._fresh_result(job)
            if result is not None:
                from_cache = True
                logger.info(f"[Scheduler] Leitura recente em cache para {job.target.id}, scraping ignorado")
            else:
                result = await self._scraper.extract_crowd_level_data(
                    job.target.name, job.target.location
                )
        except Exception as e:
            result = ScrapingResult(success=False, error=str(e) or type(e).__name__)
            logger.error(f"[Scheduler] ❌ Erro inesperado no job {job.id}: {result.error}", exc_info=True)

        job.result = result
        if self._discard_if_cancelled(job):
            return

        if result.success:
            if not from_cache:
                await self._store_result(job, result)
                if self._discard_if_cancelled(job):
                    return
            self._finish(job, JobStatus.COMPLETED)
            job.target.last_scraped = job.completed_at
            logger.info(f"[Scheduler] ✅ Job {job.id} concluído")
        else:
            self._handle_job_failure(job, result.error or "Unknown error")
            if job.status != JobStatus.FAILED:
                return

        await self._notify(job)

    def _handle_job_failure(self, job: ScrapingJob, error: str) -> None:
        job.retry_count += 1
        job.last_error = error

        if job.retry_count <= job.max_retries:
            delay = self._config.retry_delay_base * (2 ** (job.retry_count - 1))
            job.scheduled_for = utcnow() + timedelta(seconds=delay)
            job.status = JobStatus.PENDING
            self._active_jobs.pop(job.id, None)
            self._queues[job.priority].append(job)
            logger.warning(
                f"[Scheduler] ⚠️ Job {job.id} falhou ({error}); "
                f"retry {job.retry_count}/{job.max_retries} em {delay}s"
            )
        else:
            self._finish(job, JobStatus.FAILED)
            logger.error(
                f"[Scheduler] ❌ Job {job.id} falhou após {job.retry_count} tentativas: {error}"
            )

    def _finish(self, job: ScrapingJob, status: JobStatus) -> None:
        job.status = status
        job.completed_at = utcnow()
        self._active_jobs.pop(job.id, None)
        self._job_history.append(job)

    async def _notify(self, job: ScrapingJob) -> None:
        if self._on_job_completed is None:
            return
        try:
            outcome = self._on_job_completed(job)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            logger.error(f"[Scheduler] Erro no callback de conclusão do job {job.id}: {e}", exc_info=True)

    # ------------------------------------------------------------------
    # Configuração e consultas
    # ------------------------------------------------------------------

    async def update_config(self, **changes: Any) -> SchedulerConfig:
        """Atualiza configurações e reinicia os timers se estiver rodando."""
        unknown = set(changes) - set(asdict(self._config))
        if unknown:
            raise ValueError(f"Unknown scheduler config fields: {sorted(unknown)}")

        self._config = replace(self._config, **changes)
        logger.info(f"[Scheduler] Configuração atualizada: {changes}")

        if self._running:
            await self._cancel_timers()
            self._start_timers()
        return self._config

    def set_job_completed_callback(self, callback: Optional[JobCallback]) -> None:
        self._on_job_completed = callback

    def get_pending_jobs(self) -> List[ScrapingJob]:
        return [job for priority in ScrapingPriority for job in self._queues[priority]]

    def get_active_jobs(self) -> List[ScrapingJob]:
        return list(self._active_jobs.values())

    def get_job_history(self, limit: int = 100) -> List[ScrapingJob]:
        """Jobs finalizados, mais recente primeiro."""
        ordered = sorted(
            self._job_history,
            key=lambda job: job.completed_at or job.created_at,
            reverse=True,
        )
        return ordered[:max(0, limit)]

    def get_job(self, job_id: str) -> Optional[ScrapingJob]:
        if job_id in self._active_jobs:
            return self._active_jobs[job_id]
        for job in self.get_pending_jobs():
            if job.id == job_id:
                return job
        for job in self._job_history:
            if job.id == job_id:
                return job
        return None

    def clear_job_history(self) -> None:
        self._job_history.clear()

    def get_status(self) -> dict:
        """Retorna status e tamanho das filas."""
        return {
            "running": self._running,
            "queues": {priority.value: len(self._queues[priority]) for priority in ScrapingPriority},
            "active_jobs": len(self._active_jobs),
            "cancelled_in_flight": len(self._cancelled_in_flight),
            "history_size": len(self._job_history),
            "max_concurrent_jobs": self._config.max_concurrent_jobs,
            "batch_size": self._config.batch_size,
            "max_proxy_usage_per_batch": self._config.max_proxy_usage_per_batch,
            "popular_restaurants": len(self._popular_restaurants or []),
            "timers": sorted(self._timers),
        }
