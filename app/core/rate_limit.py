from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import settings

# Shared by the app state and the endpoint decorators
limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)
