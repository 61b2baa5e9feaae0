"""
Proxy Manager - Identidades de saída rotativas para o scraper.

Pool carregado do provider de proxies, com round-robin, contagem de
falhas/sucessos e refresh periódico. Pool vazio = conexão direta.
"""

from .proxy_manager import (
    ProxyManager,
    ProxyProviderConfig,
    ProxyConfig,
    ProxyDetails,
    ProxyStats,
)

__all__ = [
    "ProxyManager",
    "ProxyProviderConfig",
    "ProxyConfig",
    "ProxyDetails",
    "ProxyStats",
]
