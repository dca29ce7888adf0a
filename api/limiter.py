"""
api/limiter.py -- Shared slowapi rate limiter instance.

Import this in api/main.py (to mount as middleware) and in web/routes.py (to
apply the login limit with @limiter.limit()).

A single shared instance keeps one in-memory counter store for every route.
Separate instances per module would each count on their own and the limits
would never trigger.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")
