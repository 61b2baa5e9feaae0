import os
from dotenv import load_dotenv

# Carregar variáveis do arquivo .env
load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    # Todas as durações em SEGUNDOS
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # SERP provider (Oxylabs realtime API)
    OXYLABS_USERNAME: str = os.getenv("OXYLABS_USERNAME", "")
    OXYLABS_PASSWORD: str = os.getenv("OXYLABS_PASSWORD", "")
    OXYLABS_ENDPOINT: str = os.getenv("OXYLABS_ENDPOINT", "https://realtime.oxylabs.io/v1/queries")

    # Scraper
    SCRAPER_TIMEOUT: float = float(os.getenv("SCRAPER_TIMEOUT", "30"))
    SCRAPER_RETRY_ATTEMPTS: int = int(os.getenv("SCRAPER_RETRY_ATTEMPTS", "3"))
    SCRAPER_RETRY_DELAY: float = float(os.getenv("SCRAPER_RETRY_DELAY", "2"))
    SCRAPER_BATCH_PAUSE: float = float(os.getenv("SCRAPER_BATCH_PAUSE", "2"))

    # Proxy provider
    PROXY_ENABLED: bool = _env_bool("PROXY_ENABLED")
    PROXY_API_KEY: str = os.getenv("PROXY_API_KEY", "")
    PROXY_BASE_URL: str = os.getenv("PROXY_BASE_URL", "")
    PROXY_USERNAME: str = os.getenv("PROXY_USERNAME", "")
    PROXY_PASSWORD: str = os.getenv("PROXY_PASSWORD", "")
    PROXY_ROTATION_THRESHOLD: int = int(os.getenv("PROXY_ROTATION_THRESHOLD", "10"))
    PROXY_MAX_FAIL_COUNT: int = int(os.getenv("PROXY_MAX_FAIL_COUNT", "3"))
    PROXY_REFRESH_INTERVAL: float = float(os.getenv("PROXY_REFRESH_INTERVAL", "3600"))  # 1 hora
    PROXY_RATE_LIMIT_DELAY: float = float(os.getenv("PROXY_RATE_LIMIT_DELAY", "2"))

    # Scheduler (intervalos periódicos, em segundos)
    SCHEDULER_MAX_CONCURRENT_JOBS: int = int(os.getenv("SCHEDULER_MAX_CONCURRENT_JOBS", "3"))
    SCHEDULER_HIGH_PRIORITY_INTERVAL: float = float(os.getenv("SCHEDULER_HIGH_PRIORITY_INTERVAL", "300"))
    SCHEDULER_MEDIUM_PRIORITY_INTERVAL: float = float(os.getenv("SCHEDULER_MEDIUM_PRIORITY_INTERVAL", "900"))
    SCHEDULER_LOW_PRIORITY_INTERVAL: float = float(os.getenv("SCHEDULER_LOW_PRIORITY_INTERVAL", "3600"))
    SCHEDULER_POPULAR_RESTAURANTS_INTERVAL: float = float(os.getenv("SCHEDULER_POPULAR_RESTAURANTS_INTERVAL", "7200"))
    SCHEDULER_MAX_RETRIES: int = int(os.getenv("SCHEDULER_MAX_RETRIES", "3"))
    SCHEDULER_RETRY_DELAY_BASE: float = float(os.getenv("SCHEDULER_RETRY_DELAY_BASE", "5"))
    SCHEDULER_BATCH_SIZE: int = int(os.getenv("SCHEDULER_BATCH_SIZE", "5"))
    SCHEDULER_MAX_PROXY_USAGE_PER_BATCH: int = int(os.getenv("SCHEDULER_MAX_PROXY_USAGE_PER_BATCH", "10"))
    SCHEDULER_FRESHNESS_WINDOW: float = float(os.getenv("SCHEDULER_FRESHNESS_WINDOW", "0"))  # 0 = desativado

    # Crowd data repository
    CROWD_DATA_TTL: float = float(os.getenv("CROWD_DATA_TTL", "86400"))  # 24 horas
    CROWD_DATA_MAX_HISTORICAL_RECORDS: int = int(os.getenv("CROWD_DATA_MAX_HISTORICAL_RECORDS", "100"))
    CROWD_DATA_CLEANUP_INTERVAL: float = float(os.getenv("CROWD_DATA_CLEANUP_INTERVAL", "86400"))

    @property
    def oxylabs_configured(self) -> bool:
        return bool(self.OXYLABS_USERNAME and self.OXYLABS_PASSWORD)

    @property
    def proxy_provider_configured(self) -> bool:
        return bool(self.PROXY_API_KEY and self.PROXY_BASE_URL)


settings = Settings()
