"""
IronLicensing client for Python applications.

Validates, activates and deactivates licenses against the IronLicensing
server, gates features on the current license and keeps a local cache so
applications keep running through short network outages.

    from ironlicensing import LicenseClient, ClientConfig

    client = LicenseClient(ClientConfig(public_key="pk_live_...", product_slug="my-app"))
    if client.validate("IRON-XXXX-XXXX-XXXX-XXXX").valid:
        client.require_feature("export-pdf")

Or through the process-wide client:

    import ironlicensing

    ironlicensing.init("pk_live_...", "my-app")
    ironlicensing.validate("IRON-XXXX-XXXX-XXXX-XXXX")
    ironlicensing.has_feature("export-pdf")
"""

__version__ = "1.0.0"

from .cache import CacheState, OfflineCache, classify
from .config import ClientConfig
from .errors import (
    AlreadyInitialized,
    CacheError,
    CacheWriteFailure,
    FeatureRequired,
    InitError,
    InvalidCredentials,
    LicenseError,
    LicenseExpired,
    LicenseNotFound,
    MaxActivationsReached,
    NetworkFailure,
    ProductSlugRequired,
    PublicKeyRequired,
    RemoteAuthorityError,
    ServiceUnavailable,
    Uninitialized,
)
from .features import FeatureRegistry
from .global_client import (
    activate,
    activate_with_name,
    deactivate,
    get_client,
    get_feature,
    get_license,
    get_tiers,
    has_feature,
    init,
    init_with_config,
    is_licensed,
    is_trial,
    machine_id,
    require_feature,
    shutdown,
    start_purchase,
    start_trial,
    status,
    validate,
)
from .license_client import LicenseClient
from .machine_identity import MachineIdentity
from .models import (
    Activation,
    CacheEntry,
    CheckoutResult,
    Feature,
    License,
    LicenseResult,
    LicenseStatus,
    LicenseType,
    ProductTier,
)
from .transport import RemoteAuthorityClient
