# storefront/services/checkout_store.py
import json

import redis

from storefront.domain.checkout import CheckoutWizard
from storefront.utils.retry import redis_retry
from storefront.utils.settings import REDIS_URL, CHECKOUT_TTL_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class CheckoutStore:
    """
    Holds one checkout wizard per user in redis.
    Every save pushes the TTL forward, an abandoned checkout just expires.
    """

    def __init__(self, url: str | None = None, ttl: int = CHECKOUT_TTL_SECONDS, client: redis.Redis | None = None):
        self.redis = client or redis.Redis.from_url(url or REDIS_URL, decode_responses=True)
        self.ttl = ttl

    @staticmethod
    def _key(user_id: str) -> str:
        return f"checkout:{user_id}:wizard"

    @redis_retry()
    def load(self, user_id: str) -> CheckoutWizard | None:
        raw = self.redis.get(self._key(user_id))
        if raw is None:
            return None
        return CheckoutWizard.from_dict(json.loads(raw))

    @redis_retry()
    def save(self, user_id: str, wizard: CheckoutWizard) -> None:
        self.redis.set(self._key(user_id), json.dumps(wizard.to_dict()), ex=self.ttl)

    @redis_retry()
    def delete(self, user_id: str) -> None:
        logger.info(f"Dropping checkout state for user {user_id}")
        self.redis.delete(self._key(user_id))
