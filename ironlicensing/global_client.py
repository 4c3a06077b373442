"""
Process-wide license client.

``init`` builds the one shared LicenseClient; every free function goes
through ``get_client`` and raises ``Uninitialized`` before that. Calling
``init`` a second time raises ``AlreadyInitialized`` rather than silently
keeping (or replacing) the first client; use ``shutdown`` to start over.
"""

import threading
from typing import List, Optional

from .config import ClientConfig
from .errors import AlreadyInitialized, Uninitialized
from .license_client import LicenseClient
from .models import CheckoutResult, Feature, License, LicenseResult, LicenseStatus, ProductTier

_lock = threading.Lock()
_client: Optional[LicenseClient] = None


def init(public_key: str, product_slug: str, **options) -> LicenseClient:
    """Initialize the global client; ``options`` are extra ClientConfig fields."""
    return init_with_config(ClientConfig(public_key=public_key, product_slug=product_slug, **options))


def init_with_config(config: ClientConfig) -> LicenseClient:
    global _client
    with _lock:
        if _client is not None:
            raise AlreadyInitialized()
        _client = LicenseClient(config)
        return _client


def get_client() -> LicenseClient:
    client = _client
    if client is None:
        raise Uninitialized()
    return client


def is_initialized() -> bool:
    return _client is not None


def shutdown() -> None:
    """Close and forget the global client (no-op when not initialized)."""
    global _client
    with _lock:
        client, _client = _client, None
    if client is not None:
        client.close()


def validate(license_key: str) -> LicenseResult:
    return get_client().validate(license_key)


def activate(license_key: str) -> LicenseResult:
    return get_client().activate(license_key)


def activate_with_name(license_key: str, machine_name: Optional[str] = None) -> LicenseResult:
    return get_client().activate_with_name(license_key, machine_name)


def deactivate() -> bool:
    return get_client().deactivate()


def start_trial(email: str) -> LicenseResult:
    return get_client().start_trial(email)


def has_feature(feature_key: str) -> bool:
    return get_client().has_feature(feature_key)


def require_feature(feature_key: str) -> None:
    get_client().require_feature(feature_key)


def get_feature(feature_key: str) -> Optional[Feature]:
    return get_client().get_feature(feature_key)


def get_license() -> Optional[License]:
    return get_client().license()


def status() -> LicenseStatus:
    return get_client().status()


def is_licensed() -> bool:
    return get_client().is_licensed()


def is_trial() -> bool:
    return get_client().is_trial()


def get_tiers() -> List[ProductTier]:
    return get_client().get_tiers()


def start_purchase(tier_id: str, email: str) -> CheckoutResult:
    return get_client().start_purchase(tier_id, email)


def machine_id() -> str:
    return get_client().machine_id()
