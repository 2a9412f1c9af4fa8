"""Rate limiting configuration using slowapi.

Provides a module-level Limiter instance that routers import for
per-endpoint limits (login, avatar upload), wired into the app in main.py.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

# Default: 120 requests/minute per client IP; the dashboard polls notifications.
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["120/minute"],
)
