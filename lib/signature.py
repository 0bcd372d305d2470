import hmac
import hashlib
import logging
from typing import Optional, Tuple

logger = logging.getLogger(__name__)


def parse_signature_header(signature_header: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """Split a "t=<timestamp>,v0=<hex digest>" header into its parts"""
    if not signature_header:
        return None, None

    timestamp = None
    signature = None
    for part in signature_header.split(','):
        part = part.strip()
        if part.startswith('t='):
            timestamp = part[2:]
        elif part.startswith('v0='):
            signature = part[3:]
    return timestamp, signature


def compute_signature(secret: str, timestamp: str, raw_body: str) -> str:
    message = f"{timestamp}.{raw_body}"
    return hmac.new(secret.encode(), message.encode(), hashlib.sha256).hexdigest()


def is_signature_valid(raw_body: str, signature_header: Optional[str], secret: Optional[str]) -> bool:
    """Verify an HMAC-SHA256 webhook signature over "{timestamp}.{raw_body}" """
    if not secret or not signature_header:
        logger.warning("Webhook secret or signature header missing")
        return False

    timestamp, signature = parse_signature_header(signature_header)
    if not timestamp or not signature:
        logger.warning("Signature header is missing timestamp or digest")
        return False

    expected = compute_signature(secret, timestamp, raw_body)
    return hmac.compare_digest(expected, signature)
