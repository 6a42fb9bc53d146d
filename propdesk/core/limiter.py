from slowapi import Limiter
from slowapi.util import get_remote_address

from propdesk.core.config import settings

# Shared by main.py (middleware + handler) and the auth router decorators
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.rate_limit_storage_uri,
    enabled=settings.rate_limit_enabled,
)
