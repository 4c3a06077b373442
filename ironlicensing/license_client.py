import logging
import threading
from datetime import datetime, timezone
from typing import Callable, List, NamedTuple, Optional

from .cache import CacheState, OfflineCache
from .config import ClientConfig
from .errors import CacheWriteFailure, ProductSlugRequired, PublicKeyRequired, RemoteAuthorityError
from .features import FeatureRegistry
from .machine_identity import MachineIdentity, get_hostname, get_platform
from .models import (
    Activation,
    CacheEntry,
    CheckoutResult,
    Feature,
    License,
    LicenseResult,
    LicenseStatus,
    ProductTier,
)
from .transport import RemoteAuthorityClient

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _LicenseSnapshot(NamedTuple):
    license_key: Optional[str] = None
    license: Optional[License] = None
    activations: tuple = ()


class LicenseClient:
    """
    Thread-safe license client.

    The current license is held as one immutable snapshot: queries read it
    without locking, mutations build a new snapshot once the server has
    answered and swap it in under ``_state_lock``. No lock is ever held
    across a network call.
    """

    def __init__(
        self,
        config: ClientConfig,
        transport: Optional[RemoteAuthorityClient] = None,
        cache: Optional[OfflineCache] = None,
        machine_identity: Optional[MachineIdentity] = None,
        hostname_provider: Callable[[], str] = get_hostname,
        clock: Callable[[], datetime] = utcnow,
    ):
        if not config.public_key:
            raise PublicKeyRequired()
        if not config.product_slug:
            raise ProductSlugRequired()

        self.config = config
        if config.debug:
            logging.getLogger("ironlicensing").setLevel(logging.DEBUG)

        self.transport = transport or RemoteAuthorityClient(config)
        self.cache = cache or OfflineCache(config)
        self.features = FeatureRegistry()
        self._machine_identity = machine_identity or MachineIdentity(config.machine_id_path)
        self._hostname_provider = hostname_provider
        self._clock = clock

        self._state_lock = threading.Lock()
        self._state = _LicenseSnapshot()

        self._machine_id = self._machine_identity.get_or_create()
        logger.debug(f"Client initialized for product {config.product_slug}")

    def __enter__(self) -> "LicenseClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self.transport.close()
        self.cache.close()

    # State

    def _set_state(self, snapshot: _LicenseSnapshot) -> None:
        with self._state_lock:
            self._state = snapshot

    def _apply(self, license_key: str, license: License, activations: Optional[List[Activation]] = None) -> None:
        with self._state_lock:
            current = self._state
            if activations is None:
                # Keep the known activations only while it is the same license
                kept = current.activations if current.license_key == license_key else ()
            else:
                kept = tuple(activations)
            self._state = _LicenseSnapshot(license_key, license, kept)

    def _drop(self, license_key: str) -> None:
        with self._state_lock:
            if self._state.license_key == license_key:
                self._state = _LicenseSnapshot()

    def _persist(self, license_key: str, license: License, now: datetime) -> None:
        entry = self.cache.build_entry(license_key, license, now)
        try:
            self.cache.write(entry)
        except CacheWriteFailure as e:
            logger.warning(f"License cache not updated: {e}")

    def _accept(self, license_key: str, result: LicenseResult, now: datetime) -> LicenseResult:
        """Store an authoritative server response in memory and in the cache."""
        self._apply(license_key, result.license, result.activations)
        self._persist(license_key, result.license, now)
        return result

    # License operations

    def validate(self, license_key: str) -> LicenseResult:
        """
        Validate a license key.

        A fresh cache entry answers without contacting the server. Otherwise
        the server is asked; if it cannot be reached, a stale entry still
        inside the grace window is used in its place.
        """
        now = self._clock()
        entry = self.cache.read(license_key)
        state = self.cache.classify(entry, now) if entry is not None else None

        if state is CacheState.FRESH:
            logger.debug("Using fresh cached validation")
            self._apply(license_key, entry.license)
            return LicenseResult.from_cache(entry.license)

        try:
            result = self.transport.validate(license_key, self._machine_id)
        except RemoteAuthorityError as e:
            return self._validation_failed(license_key, entry, state, e)

        if not result.valid and result.license.is_licensed:
            # Refusal that still carries an entitled license: keep the current state
            logger.warning(f"License validation refused: {result.error}")
            return LicenseResult.failure(result.error or LicenseStatus.INVALID.value)

        logger.info(f"License validated: {result.license.status.value}")
        return self._accept(license_key, result, now)

    def _validation_failed(
        self,
        license_key: str,
        entry: Optional[CacheEntry],
        state: Optional[CacheState],
        error: RemoteAuthorityError,
    ) -> LicenseResult:
        if state is CacheState.STALE_VALID and error.recoverable:
            logger.warning(
                f"License server unreachable ({error.code}); using cached license "
                f"valid offline until {entry.validated_offline_until.isoformat()}"
            )
            self._apply(license_key, entry.license)
            return LicenseResult.from_cache(entry.license, in_grace_period=True)

        if state is CacheState.EXPIRED:
            logger.warning("Offline grace period expired; discarding cached license")
            self.cache.clear(license_key)
            self._drop(license_key)

        logger.warning(f"License validation failed: {error}")
        return LicenseResult.failure(error.code)

    def activate(self, license_key: str) -> LicenseResult:
        """Activate a license key on this machine."""
        return self.activate_with_name(license_key, None)

    def activate_with_name(self, license_key: str, machine_name: Optional[str] = None) -> LicenseResult:
        """Activate a license key with a custom machine name (defaults to the hostname)."""
        now = self._clock()
        name = machine_name or self._hostname_provider()

        try:
            result = self.transport.activate(license_key, self._machine_id, name, get_platform())
        except RemoteAuthorityError as e:
            logger.warning(f"License activation failed: {e}")
            return LicenseResult.failure(e.code)

        if not result.valid:
            logger.warning(f"License activation refused: {result.error}")
            return LicenseResult.failure(result.error or "activation_failed")

        logger.info(f"License activated on {name}")
        return self._accept(license_key, result, now)

    def deactivate(self) -> bool:
        """Deactivate the current license from this machine."""
        license_key = self._state.license_key
        if license_key is None:
            return False

        try:
            self.transport.deactivate(license_key, self._machine_id)
        except RemoteAuthorityError as e:
            logger.warning(f"License deactivation failed: {e}")
            return False

        self._set_state(_LicenseSnapshot())
        self.cache.clear(license_key)
        logger.info("License deactivated")
        return True

    def start_trial(self, email: str) -> LicenseResult:
        now = self._clock()
        try:
            result = self.transport.start_trial(email, self._machine_id)
        except RemoteAuthorityError as e:
            logger.warning(f"Trial request failed: {e}")
            return LicenseResult.failure(e.code)

        if not result.valid:
            logger.warning(f"Trial request refused: {result.error}")
            return LicenseResult.failure(result.error or "trial_failed")

        logger.info("Trial started")
        return self._accept(result.license.key, result, now)

    # Purchase passthroughs

    def get_tiers(self) -> List[ProductTier]:
        try:
            return self.transport.get_tiers()
        except RemoteAuthorityError as e:
            logger.warning(f"Could not fetch product tiers: {e}")
            return []

    def start_purchase(self, tier_id: str, email: str) -> CheckoutResult:
        try:
            return self.transport.start_checkout(tier_id, email)
        except RemoteAuthorityError as e:
            logger.warning(f"Checkout failed: {e}")
            return CheckoutResult.failure(e.code)

    # Queries

    def has_feature(self, feature_key: str) -> bool:
        return self.features.has_feature(self._state.license, feature_key)

    def get_feature(self, feature_key: str) -> Optional[Feature]:
        return self.features.get_feature(self._state.license, feature_key)

    def require_feature(self, feature_key: str) -> None:
        """Raise FeatureRequired unless the current license includes ``feature_key``."""
        self.features.require_feature(self._state.license, feature_key)

    def license(self) -> Optional[License]:
        return self._state.license

    def license_key(self) -> Optional[str]:
        return self._state.license_key

    def activations(self) -> List[Activation]:
        return list(self._state.activations)

    def status(self) -> LicenseStatus:
        license = self._state.license
        if license is None:
            return LicenseStatus.NOT_ACTIVATED
        return license.status

    def is_licensed(self) -> bool:
        license = self._state.license
        return license is not None and license.is_licensed

    def is_trial(self) -> bool:
        return self.status() is LicenseStatus.TRIAL

    def machine_id(self) -> str:
        return self._machine_id
