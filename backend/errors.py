# backend/errors.py
"""
Camera Vault Exception Hierarchy

Custom exceptions for the discovery and image pipeline with recovery hints.
"""

from typing import Any, Dict, Optional


class CameraVaultError(Exception):
    """Base exception for all Camera Vault errors"""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = True,
        recovery_hint: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable
        self.recovery_hint = recovery_hint

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "error": self.__class__.__name__,
            "message": self.message,
            "recoverable": self.recoverable,
        }
        if self.details:
            result["details"] = self.details
        if self.recovery_hint:
            result["recoveryHint"] = self.recovery_hint
        return result


# =============================================================================
# IMAGE SOURCE ERRORS
# =============================================================================

class ProviderError(CameraVaultError):
    """Image source provider failed (network, HTTP status, bad markup)"""

    def __init__(
        self,
        provider: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None
    ):
        super().__init__(
            message=f"{provider} error: {message}",
            details={"provider": provider, "statusCode": status_code, **(details or {})},
            recoverable=True,
            recovery_hint="Falling through to the next image source"
        )
        self.provider = provider
        self.status_code = status_code


class ImageDownloadError(CameraVaultError):
    """Image could not be downloaded"""

    def __init__(self, url: str, reason: str):
        super().__init__(
            message=f"Download failed: {reason}",
            details={"url": url, "reason": reason},
            recoverable=True,
            recovery_hint="Falling through to the next image source"
        )
        self.url = url


class ImageValidationError(CameraVaultError):
    """Downloaded bytes are not a usable product image"""

    def __init__(self, reason: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=f"Invalid image: {reason}",
            details={"reason": reason, **(details or {})},
            recoverable=True,
            recovery_hint="Treated as a provider miss; placeholder will be generated"
        )


class ImageProcessingError(CameraVaultError):
    """Image could not be normalized or written to disk"""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(
            message=message,
            details={"path": path} if path else None,
            recoverable=True,
            recovery_hint="Check free disk space and permissions on the images directory"
        )


# =============================================================================
# PERSISTENCE ERRORS
# =============================================================================

class RecordStoreError(CameraVaultError):
    """Write or read against the record store failed"""

    def __init__(
        self,
        message: str,
        brand: Optional[str] = None,
        model: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            details={"brand": brand, "model": model, **(details or {})},
            recoverable=True,
            recovery_hint="Record skipped; other records in the batch continue"
        )


class DuplicateSlugError(RecordStoreError):
    """Slug already taken by another record"""

    def __init__(self, slug: str):
        super().__init__(
            message=f"Slug already in use: {slug}",
            details={"slug": slug},
        )
        self.slug = slug


class StoreInitializationError(CameraVaultError):
    """Store file unreadable or corrupt at startup"""

    def __init__(self, path: str, reason: str):
        super().__init__(
            message=f"Cannot open store {path}: {reason}",
            details={"path": path},
            recoverable=False,
            recovery_hint="Restore the store from the latest backup snapshot"
        )


# =============================================================================
# SCHEDULING ERRORS
# =============================================================================

class QuotaExhaustedError(CameraVaultError):
    """Daily quota reached; normal early termination"""

    def __init__(self, daily_limit: int):
        super().__init__(
            message=f"Daily quota of {daily_limit} cameras reached",
            details={"dailyLimit": daily_limit},
            recoverable=True,
            recovery_hint="Remaining candidates are picked up after the local day changes"
        )
        self.daily_limit = daily_limit


# =============================================================================
# BACKUP / CONFIGURATION ERRORS
# =============================================================================

class BackupError(CameraVaultError):
    """Snapshot could not be written"""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(
            message=message,
            details={"path": path} if path else None,
            recoverable=False,
            recovery_hint="Check that the backups directory exists and is writable"
        )


class ConfigurationError(CameraVaultError):
    """Configuration error"""

    def __init__(
        self,
        message: str,
        setting: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            details={"setting": setting, **(details or {})},
            recoverable=False,
            recovery_hint="Check .env configuration file"
        )
