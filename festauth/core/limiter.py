"""Request rate limiter shared by the API routers."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from festauth.core.config import get_settings

limiter = Limiter(
    key_func=get_remote_address,
    enabled=get_settings().rate_limit_enabled,
)
