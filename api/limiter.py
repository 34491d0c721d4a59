"""
api/limiter.py -- Shared slowapi rate limiter instance.

Import this in api/main.py (to mount as middleware) and in the route
modules (to apply per-route limits with @limiter.limit()).

A single shared instance means all routes share one counter store.
Per-module instances would each keep an isolated counter and limits
would never trigger.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")
