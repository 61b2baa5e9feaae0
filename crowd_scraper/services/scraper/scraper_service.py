"""
Scraper Service - Crowd level via SERP provider (Oxylabs realtime API).

Fluxo por restaurante:
1. Montar query "<nome> [<local>] popular times"
2. Validar credenciais (fail-fast, sem retry)
3. POST no provider pedindo HTML renderizado (proxy + rate limit opcionais)
4. Extrair crowd level do HTML (crowd_extractor)

Todo o fluxo roda dentro de um retry com backoff exponencial (tenacity).
"""

import asyncio
import logging
import time
from dataclasses import dataclass, asdict, replace
from typing import Callable, Dict, List, Optional, Any

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from crowd_scraper.core.config import settings
from crowd_scraper.core.exceptions import (
    EmptyResultError,
    ProviderError,
    ProviderResponseError,
    ScraperConfigurationError,
)
from crowd_scraper.services.proxy_manager import ProxyConfig, ProxyManager
from .crowd_extractor import extract_crowd_data_from_page
from .models import CrowdLevelData, ScrapingResult

logger = logging.getLogger(__name__)

POPULAR_TIMES_QUALIFIER = "popular times"

# Erros transitórios: retry com backoff. Erro de configuração NÃO entra aqui.
RETRYABLE_ERRORS = (ProviderError, httpx.HTTPError)

ClientFactory = Callable[[Optional[ProxyConfig]], httpx.AsyncClient]


@dataclass
class ScraperConfig:
    """Configuração do scraper (atualizável em runtime via update_config)."""
    timeout: float = 30.0
    retry_attempts: int = 3
    retry_delay: float = 2.0
    batch_pause: float = 2.0
    oxylabs_username: str = ""
    oxylabs_password: str = ""
    endpoint: str = "https://realtime.oxylabs.io/v1/queries"

    @classmethod
    def from_settings(cls) -> "ScraperConfig":
        return cls(
            timeout=settings.SCRAPER_TIMEOUT,
            retry_attempts=settings.SCRAPER_RETRY_ATTEMPTS,
            retry_delay=settings.SCRAPER_RETRY_DELAY,
            batch_pause=settings.SCRAPER_BATCH_PAUSE,
            oxylabs_username=settings.OXYLABS_USERNAME,
            oxylabs_password=settings.OXYLABS_PASSWORD,
            endpoint=settings.OXYLABS_ENDPOINT,
        )

    @property
    def credentials_configured(self) -> bool:
        return bool(self.oxylabs_username and self.oxylabs_password)

    def public_view(self) -> Dict[str, Any]:
        view = asdict(self)
        view.pop("oxylabs_username")
        view.pop("oxylabs_password")
        view["oxylabs_configured"] = self.credentials_configured
        return view


def build_search_query(restaurant_name: str, location: Optional[str] = None) -> str:
    name = (restaurant_name or "").strip()
    place = (location or "").strip()
    if place:
        return f"{name} {place} {POPULAR_TIMES_QUALIFIER}"
    return f"{name} {POPULAR_TIMES_QUALIFIER}"


class ScraperService:
    """
    Extrai crowd level de restaurantes a partir da SERP do Google.

    Features:
    - Retry com backoff exponencial (retry_delay * 2^(tentativa-1))
    - Rotação de proxy por contagem de uso e por falha
    - Batch com concorrência limitada por chunks
    - Cliente HTTP com connection pooling para conexões diretas
    """

    def __init__(
        self,
        config: Optional[ScraperConfig] = None,
        proxy_manager: Optional[ProxyManager] = None,
        client_factory: Optional[ClientFactory] = None,
    ):
        """
        Args:
            config: Configuração (default: variáveis de ambiente)
            proxy_manager: Pool de proxies opcional; sem ele, conexão direta
            client_factory: Cria o cliente HTTP para um proxy (None = direto)
        """
        self._config = config or ScraperConfig.from_settings()
        self._proxy_manager = proxy_manager
        self._client_factory = client_factory or self._default_client_factory

        self._client: Optional[httpx.AsyncClient] = None
        self._client_lock = asyncio.Lock()

        # Proxy corrente e quantas vezes foi usado desde a última rotação
        self._current_proxy: Optional[ProxyConfig] = None
        self._proxy_usage_count = 0

        # Métricas
        self._total_requests = 0
        self._successful_requests = 0
        self._failed_requests = 0

        logger.info(
            f"[Scraper] timeout={self._config.timeout}s, "
            f"retry_attempts={self._config.retry_attempts}, "
            f"retry_delay={self._config.retry_delay}s, "
            f"oxylabs_configured={self._config.credentials_configured}, "
            f"proxy_manager={'on' if proxy_manager else 'off'}"
        )

    @property
    def config(self) -> ScraperConfig:
        return self._config

    def _default_client_factory(self, proxy: Optional[ProxyConfig]) -> httpx.AsyncClient:
        if proxy is None:
            return httpx.AsyncClient(
                timeout=httpx.Timeout(self._config.timeout),
                limits=httpx.Limits(max_keepalive_connections=20, keepalive_expiry=30.0),
                http2=True,
            )
        return httpx.AsyncClient(proxy=proxy.url, timeout=httpx.Timeout(self._config.timeout))

    async def _get_client(self) -> httpx.AsyncClient:
        """Cliente direto compartilhado (lazy)."""
        async with self._client_lock:
            if self._client is None or self._client.is_closed:
                self._client = self._client_factory(None)
        return self._client

    async def close(self):
        async with self._client_lock:
            if self._client and not self._client.is_closed:
                await self._client.aclose()
                self._client = None
                logger.info("[Scraper] Cliente HTTP fechado")

    async def _acquire_proxy(self) -> Optional[ProxyConfig]:
        if self._proxy_manager is None:
            return None
        if self._current_proxy is None or self._proxy_manager.should_rotate_proxy(self._proxy_usage_count):
            self._current_proxy = await self._proxy_manager.get_proxy()
            self._proxy_usage_count = 0
        if self._current_proxy is not None:
            self._proxy_usage_count += 1
        return self._current_proxy

    def _drop_proxy(self, proxy: Optional[ProxyConfig]):
        """Força rotação na próxima tentativa."""
        if proxy is not None and self._current_proxy is proxy:
            self._current_proxy = None
            self._proxy_usage_count = 0

    async def _post_query(self, client: httpx.AsyncClient, query: str) -> httpx.Response:
        payload = {
            "source": "google_search",
            "query": query,
            "parse": False,
            "render": "html",
        }
        auth = (self._config.oxylabs_username, self._config.oxylabs_password)
        return await client.post(self._config.endpoint, json=payload, auth=auth)

    async def _fetch_markup(self, query: str) -> str:
        """Uma chamada ao provider SERP. Retorna o HTML do primeiro resultado."""
        if not self._config.credentials_configured:
            raise ScraperConfigurationError("Oxylabs credentials not configured")

        proxy = await self._acquire_proxy()
        if self._proxy_manager is not None:
            await self._proxy_manager.apply_rate_limit()

        logger.debug(f"[Scraper] Requisição ao provider: '{query}' via {proxy.key if proxy else 'direct'}")
        start = time.perf_counter()
        self._total_requests += 1

        try:
            if proxy is None:
                client = await self._get_client()
                response = await self._post_query(client, query)
            else:
                async with self._client_factory(proxy) as client:
                    response = await self._post_query(client, query)

            if response.status_code >= 400:
                raise ProviderResponseError(response.status_code, response.reason_phrase)

            try:
                body = response.json()
            except ValueError as e:
                raise ProviderError("SERP provider returned invalid JSON") from e

            results = body.get("results") if isinstance(body, dict) else None
            if not results:
                raise EmptyResultError()
        except RETRYABLE_ERRORS as e:
            self._failed_requests += 1
            if proxy is not None:
                self._proxy_manager.report_proxy_failure(proxy, e)
                self._drop_proxy(proxy)
            raise

        latency_ms = (time.perf_counter() - start) * 1000
        self._successful_requests += 1
        if proxy is not None:
            self._proxy_manager.report_proxy_success(proxy, latency_ms)

        return results[0].get("content") or ""

    async def _scrape_once(self, restaurant_name: str, location: Optional[str]) -> Optional[CrowdLevelData]:
        query = build_search_query(restaurant_name, location)
        markup = await self._fetch_markup(query)
        return self.extract_crowd_data_from_page(markup, restaurant_name)

    def extract_crowd_data_from_page(self, markup: str, restaurant_name: Optional[str] = None) -> Optional[CrowdLevelData]:
        return extract_crowd_data_from_page(markup, restaurant_name)

    async def extract_crowd_level_data(self, restaurant_name: str, location: Optional[str] = None) -> ScrapingResult:
        """
        Extrai crowd level para um restaurante.

        Args:
            restaurant_name: Nome do restaurante
            location: Local opcional (cidade, endereço) agregado à query

        Returns:
            ScrapingResult; success=True com data=None quando não há widget
            "Popular times" na página.
        """
        logger.info(
            f"[Scraper] Extraindo crowd level: {restaurant_name}"
            f"{f' em {location}' if location else ''}"
        )

        # Lidos a cada chamada: update_config vale para a próxima extração
        retrying = AsyncRetrying(
            stop=stop_after_attempt(max(0, self._config.retry_attempts) + 1),
            wait=wait_exponential(multiplier=self._config.retry_delay, exp_base=2, min=0),
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

        attempts = 0
        try:
            async for attempt in retrying:
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    data = await self._scrape_once(restaurant_name, location)
        except ScraperConfigurationError as e:
            logger.error(f"[Scraper] ❌ {e}")
            return ScrapingResult(success=False, error=str(e), retry_count=0)
        except Exception as e:
            message = str(e) or type(e).__name__
            logger.error(
                f"[Scraper] ❌ Falha após {attempts} tentativa(s) para {restaurant_name}: {message}"
            )
            return ScrapingResult(
                success=False,
                error=f"All {attempts} attempts failed. Last error: {message}",
                retry_count=max(0, attempts - 1),
            )

        return ScrapingResult(success=True, data=data, retry_count=attempts - 1)

    async def batch_process(
        self,
        restaurants: List[str],
        location: Optional[str] = None,
        concurrency: int = 2,
    ) -> Dict[str, ScrapingResult]:
        """
        Processa vários restaurantes em chunks de tamanho `concurrency`.

        Cada chunk roda em paralelo; pausa fixa entre chunks para não
        gerar burst no provider. Falhas são isoladas por restaurante.
        """
        concurrency = max(1, concurrency)
        chunks = [restaurants[i:i + concurrency] for i in range(0, len(restaurants), concurrency)]
        logger.info(
            f"[Scraper] Batch: {len(restaurants)} restaurantes, "
            f"concurrency={concurrency}, {len(chunks)} chunks"
        )

        results: Dict[str, ScrapingResult] = {}
        for index, chunk in enumerate(chunks):
            logger.info(f"[Scraper] Chunk {index + 1}/{len(chunks)}")
            chunk_results = await asyncio.gather(
                *(self.extract_crowd_level_data(name, location) for name in chunk)
            )
            for name, result in zip(chunk, chunk_results):
                results[name] = result

            if index < len(chunks) - 1 and self._config.batch_pause > 0:
                await asyncio.sleep(self._config.batch_pause)

        return results

    def update_config(self, **changes: Any) -> None:
        """Atualiza configurações (campos de ScraperConfig)."""
        unknown = set(changes) - set(asdict(self._config))
        if unknown:
            raise ValueError(f"Unknown scraper config fields: {sorted(unknown)}")
        self._config = replace(self._config, **changes)
        logger.info(f"[Scraper] Configuração atualizada: {self._config.public_view()}")

    def get_status(self) -> dict:
        """Retorna status e métricas."""
        return {
            "total_requests": self._total_requests,
            "successful_requests": self._successful_requests,
            "failed_requests": self._failed_requests,
            "current_proxy": self._current_proxy.key if self._current_proxy else None,
            "proxy_usage_count": self._proxy_usage_count,
            "config": self._config.public_view(),
        }
