import hmac
import logging

from app.core.config import settings

_logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-API-Key"


def configured_api_keys() -> list[str]:
    return [k for k in settings.API_KEYS if k]


def verify_api_key(candidate: str | None, keys: list[str] | None = None) -> bool:
    """Constant-time comparison of *candidate* against every configured key."""
    if not candidate:
        return False
    allowed = configured_api_keys() if keys is None else keys
    matched = False
    for key in allowed:
        # No early exit, so timing does not reveal which key matched
        if hmac.compare_digest(candidate.encode(), key.encode()):
            matched = True
    return matched
