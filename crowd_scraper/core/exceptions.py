"""
Hierarquia de exceções do pipeline de aquisição de crowd level.

- ScraperConfigurationError: falha de configuração, nunca é retentada
- ProviderError e subclasses: falhas transitórias do provider SERP (retry)
- ProxyProviderError: falha ao buscar a lista de proxies
"""

from typing import Optional


class CrowdScraperError(Exception):
    """Erro base do serviço."""


class ScraperConfigurationError(CrowdScraperError):
    """Credenciais do provider ausentes ou inválidas."""


class ProviderError(CrowdScraperError):
    """Falha transitória ao consultar o provider SERP."""


class ProviderResponseError(ProviderError):
    """Provider respondeu com status HTTP de erro."""

    def __init__(self, status_code: int, reason: str = ""):
        self.status_code = status_code
        self.reason = reason
        message = f"SERP provider request failed: {status_code}"
        if reason:
            message = f"{message} {reason}"
        super().__init__(message)


class EmptyResultError(ProviderError):
    """Provider respondeu sem nenhum bloco de resultado."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or "No results returned from SERP provider")


class ProxyProviderError(CrowdScraperError):
    """Falha ao carregar/atualizar o pool de proxies."""
