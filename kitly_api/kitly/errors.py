"""
Error taxonomy for the bundle service.

Every error carries the HTTP status it maps to; the mapping to a response
happens once, in ``kitly.main``.
"""
from typing import Any, Dict, Optional


class KitlyError(Exception):
    """Base class for all service errors."""

    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    def to_payload(self) -> Dict[str, Any]:
        return {"detail": self.message, "error": type(self).__name__}


class InvalidBundleError(KitlyError):
    """Bundle input is malformed (empty products, bad quantity, bad status...)."""

    status_code = 400


class InvalidDiscountError(KitlyError):
    """Discount type is unknown or the value is out of range."""

    status_code = 400


class BundleNotFoundError(KitlyError):
    status_code = 404

    def __init__(self, bundle_id: Any):
        super().__init__(f"Bundle {bundle_id} not found")
        self.bundle_id = bundle_id


class ConcurrentModificationError(KitlyError):
    """The bundle changed since the caller read it."""

    status_code = 409

    def __init__(self, bundle_id: Any, expected_version: int):
        super().__init__(f"Bundle {bundle_id} was modified concurrently (expected version {expected_version})")
        self.bundle_id = bundle_id
        self.expected_version = expected_version


class ShopNotInstalledError(KitlyError):
    status_code = 401

    def __init__(self, shop: Optional[str]):
        super().__init__(f"Shop {shop or '<missing>'} has not installed the app")
        self.shop = shop


class WebhookVerificationError(KitlyError):
    status_code = 401


class SubscriptionRequiredError(KitlyError):
    """No active billing charge; the request is refused (fail closed)."""

    status_code = 402

    def __init__(self, message: str = "An active subscription is required", confirmation_url: Optional[str] = None):
        super().__init__(message)
        self.confirmation_url = confirmation_url

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload["confirmation_url"] = self.confirmation_url
        return payload


class PlatformSyncError(KitlyError):
    """The commerce platform rejected a call or could not be reached."""

    status_code = 502

    def __init__(self, message: str, status: Optional[int] = None, body: Any = None):
        super().__init__(message)
        self.status = status
        self.body = body

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload["platform_status"] = self.status
        return payload


class CollaboratorTimeoutError(PlatformSyncError):
    """A collaborator call exceeded its timeout. Transient."""

    status_code = 504

    def __init__(self, message: str):
        super().__init__(message, status=None, body=None)
