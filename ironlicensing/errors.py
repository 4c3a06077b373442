from typing import Optional


class LicenseError(Exception):
    """Base class for every error raised by the licensing client."""

    code = "license_error"
    default_message = "Licensing error"

    def __init__(self, message: Optional[str] = None, code: Optional[str] = None):
        super().__init__(message or self.default_message)
        if code:
            self.code = code


# Initialization

class InitError(LicenseError):
    code = "init_error"
    default_message = "Licensing client could not be initialized"


class PublicKeyRequired(InitError):
    code = "public_key_required"
    default_message = "Public key is required"


class ProductSlugRequired(InitError):
    code = "product_slug_required"
    default_message = "Product slug is required"


class AlreadyInitialized(InitError):
    code = "already_initialized"
    default_message = "Licensing client already initialized"


class Uninitialized(LicenseError):
    code = "not_initialized"
    default_message = "Licensing client not initialized"


# Entitlement

class FeatureRequired(LicenseError):
    code = "feature_required"

    def __init__(self, feature: str):
        super().__init__(f"Feature '{feature}' requires a valid license")
        self.feature = feature


# Local cache

class CacheError(LicenseError):
    code = "cache_error"
    default_message = "License cache error"


class CacheWriteFailure(CacheError):
    code = "cache_write_failure"
    default_message = "Could not persist license cache"


# Remote authority

class RemoteAuthorityError(LicenseError):
    """
    Failure reported by (or while reaching) the licensing server.

    ``recoverable`` errors are transient: a stale cached license may be
    used in their place while it is still inside the grace window.
    """

    code = "request_failed"
    default_message = "Request to license server failed"
    recoverable = False


class NetworkFailure(RemoteAuthorityError):
    code = "network_failure"
    default_message = "License server unreachable"
    recoverable = True


class ServiceUnavailable(RemoteAuthorityError):
    code = "service_unavailable"
    default_message = "License server unavailable"
    recoverable = True


class InvalidCredentials(RemoteAuthorityError):
    code = "invalid_credentials"
    default_message = "Invalid public key or product slug"


class LicenseNotFound(RemoteAuthorityError):
    code = "license_not_found"
    default_message = "License not found"


class LicenseExpired(RemoteAuthorityError):
    code = "license_expired"
    default_message = "License expired"


class MaxActivationsReached(RemoteAuthorityError):
    code = "max_activations_reached"
    default_message = "Maximum number of activations reached"


_ERRORS_BY_CODE = {
    cls.code: cls
    for cls in (
        NetworkFailure,
        ServiceUnavailable,
        InvalidCredentials,
        LicenseNotFound,
        LicenseExpired,
        MaxActivationsReached,
    )
}


def error_for_code(code: Optional[str], message: Optional[str] = None) -> RemoteAuthorityError:
    """Map a server error code to its exception, falling back to the generic one."""
    cls = _ERRORS_BY_CODE.get(code or "")
    if cls is not None:
        return cls(message)
    return RemoteAuthorityError(message or code, code=code)
