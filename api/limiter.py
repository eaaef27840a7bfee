"""
api/limiter.py -- Shared slowapi rate limiter instance.

Import this in api/main.py (to mount as middleware) and in the route modules
(to apply per-route limits with @limiter.limit()).

Using a single shared instance ensures all routes share the same in-memory
counter store. If this were instantiated in each module separately, each
module would get its own isolated counter and rate limits would never trigger.

Per-route limit strings are read from Settings at request time through the
callables below, so tests and deployments can tune them by environment.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://",
    enabled=get_settings().rate_limit_enabled,
)


def register_limit() -> str:
    return get_settings().register_rate_limit


def login_limit() -> str:
    return get_settings().login_rate_limit


def refresh_limit() -> str:
    return get_settings().refresh_rate_limit


def create_admin_limit() -> str:
    return get_settings().create_admin_rate_limit
