"""
Hash utilities for signature integrity and webhook verification.
"""

import base64
import hashlib
import hmac


def calculate_data_hash(data: str) -> str:
    """Return the hex SHA-256 digest of a UTF-8 string."""
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def hashes_match(data: str, expected_hash: str) -> bool:
    """Recompute the digest of data and compare it in constant time."""
    return hmac.compare_digest(calculate_data_hash(data), expected_hash or "")


def hmac_sha256_base64(secret: str, body: bytes) -> str:
    """Base64 HMAC-SHA256 of body, the format LINE puts in X-Line-Signature."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")
