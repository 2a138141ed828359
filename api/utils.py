# api/utils.py
"""
Utility functions for the API.
"""
import hashlib
import logging
from typing import Optional

logger = logging.getLogger("create-user-api.utils")

BEARER_PREFIX = "Bearer "


def hash_user_id_for_logging(user_id: str) -> str:
    """
    Hash a user ID for privacy-preserving logging.

    Creates a short hash of the user ID that can be used in logs to track
    requests without exposing the actual user ID.

    Args:
        user_id: The user ID to hash

    Returns:
        First 8 characters of SHA-256 hash
    """
    return hashlib.sha256(user_id.encode()).hexdigest()[:8]


def mask_email(email: Optional[str]) -> str:
    """Keep the first character and the domain: ``j***@example.com``."""
    if not email or "@" not in email:
        return "<empty>"
    local, domain = email.split("@", 1)
    return f"{local[:1]}***@{domain}"


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """
    Strip the ``Bearer `` prefix from an Authorization header value.

    A header without the prefix is taken as the raw token. Returns None when
    there is nothing left to verify.
    """
    if not authorization:
        return None
    token = authorization.replace(BEARER_PREFIX, "", 1).strip()
    return token or None
