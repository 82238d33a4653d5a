"""
Utilities for verifying platform webhook signatures.

The platform signs each webhook body with HMAC-SHA256 using the app's API
secret and sends the base64 digest in the ``X-Shopify-Hmac-Sha256`` header.
"""
import base64
import binascii
import hashlib
import hmac
from typing import Optional


def compute_webhook_signature(body: bytes, secret: str) -> str:
    """
    Compute the base64-encoded HMAC-SHA256 of a raw webhook body.

    Args:
        body: Raw request body, exactly as received
        secret: The app's API secret

    Returns:
        Base64 digest string, comparable to the signature header
    """
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def validate_signature(signature: Optional[str]) -> bool:
    """
    Validate that a signature header is a well-formed base64 SHA-256 digest.

    Args:
        signature: The header value

    Returns:
        True if the value decodes to 32 bytes, False otherwise
    """
    if not signature or not isinstance(signature, str):
        return False
    try:
        return len(base64.b64decode(signature, validate=True)) == hashlib.sha256().digest_size
    except (binascii.Error, ValueError):
        return False


def verify_webhook_signature(body: bytes, signature: Optional[str], secret: Optional[str]) -> bool:
    """Constant-time check of ``signature`` against the body's expected digest."""
    if not secret or not validate_signature(signature):
        return False
    expected = compute_webhook_signature(body, secret)
    return hmac.compare_digest(expected, signature)
