"""Shared rate limiter; main.py registers it on app.state and the 429 handler."""
from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)

# Public "do you deliver here?" lookups, per client IP
RESOLVE_RATE_LIMIT = "60/minute"
