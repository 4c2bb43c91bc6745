import hashlib
import hmac
import json
from typing import Any, Union


def canonical_json(payload: Any) -> str:
    return json.dumps(payload, separators=(",", ":"), default=str)


def generate_signature(secret: str, timestamp: Union[int, str], payload: Any) -> str:
    """
    HMAC-SHA256 hex digest over "<timestamp>.<json(payload)>".

    The timestamp is sent alongside the signature (X-Webhook-Timestamp) so the
    receiver can rebuild the signed string and reject stale deliveries.
    """
    message = f"{timestamp}.{canonical_json(payload)}"
    return hmac.new(
        secret.encode("utf-8"),
        message.encode("utf-8"),
        hashlib.sha256
    ).hexdigest()


def verify_signature(secret: str, signature: str, timestamp: Union[int, str], payload: Any) -> bool:
    expected = generate_signature(secret, timestamp, payload)
    return hmac.compare_digest(expected.encode("utf-8"), (signature or "").encode("utf-8"))
