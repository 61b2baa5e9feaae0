"""
Schemas Pydantic para o endpoint de proxies v2.
"""
from pydantic import BaseModel, Field


class ProxyStatsResponse(BaseModel):
    """
    Estatísticas do pool de proxies.

    Campos:
        enabled: Se o pool de proxies está em uso
        pool_size: Total de proxies conhecidos
        active_proxies: Proxies ainda ativos
    """
    enabled: bool
    pool_size: int = 0
    active_proxies: int = 0
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    average_response_time: float = Field(0.0, description="Média em ms")
