"""
API v2 endpoints.
"""

from . import crowd
from . import jobs
from . import proxies

__all__ = [
    'crowd',
    'jobs',
    'proxies',
]
