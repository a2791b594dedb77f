# backend/gardenbook/redis_client.py

from typing import Optional

from redis import Redis

from .config import settings

# None when REDIS_URL is not configured: no cross-request slot cache,
# notifications are only logged
redis_client: Optional[Redis] = (
    Redis.from_url(settings.redis_url, decode_responses=True)
    if settings.redis_url
    else None
)
