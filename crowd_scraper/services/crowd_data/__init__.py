from .repository import (
    CrowdDataRecord,
    CrowdDataRepository,
    InMemoryCrowdDataRepository,
    restaurant_slug,
)

__all__ = [
    "CrowdDataRecord",
    "CrowdDataRepository",
    "InMemoryCrowdDataRepository",
    "restaurant_slug",
]
