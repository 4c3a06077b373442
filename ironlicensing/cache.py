"""
Offline license cache.

Persists the last successful validation per product/key pair and decides,
from the age of that record, whether it can stand in for a remote call.
The decision itself is the pure function :func:`classify`.
"""

import logging
import threading
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.exc import SQLAlchemyError

from .config import ClientConfig
from .database import LocalLicenseCache, create_cache_engine, create_session_factory
from .errors import CacheWriteFailure
from .models import CacheEntry, License

logger = logging.getLogger(__name__)


class CacheState(str, Enum):
    FRESH = "fresh"
    STALE_VALID = "stale_valid"
    EXPIRED = "expired"


def classify(now: datetime, cached_at: datetime, ttl: timedelta, grace: timedelta) -> CacheState:
    """
    Place a cache entry in one of the nested time windows.

    Both bounds are exclusive: an entry exactly ``ttl`` old is no longer
    fresh and one exactly ``grace`` old is expired. Freshness is capped
    by the grace window, so a fresh entry is never past its grace period.
    """
    age = now - cached_at
    if age < timedelta(0):
        # Written "in the future": clock moved backwards, don't trust it
        return CacheState.EXPIRED
    if age < ttl and age < grace:
        return CacheState.FRESH
    if age < grace:
        return CacheState.STALE_VALID
    return CacheState.EXPIRED


def _to_db(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.replace(tzinfo=None)


def _from_db(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class OfflineCache:
    def __init__(self, config: ClientConfig):
        self.enabled = config.enable_offline_cache
        self.product_slug = config.product_slug
        self.db_path = config.cache_db_path
        self.cache_validation_minutes = config.cache_validation_minutes
        self.offline_grace_days = config.offline_grace_days
        self._engine = None
        self._session_factory = None
        self._init_lock = threading.Lock()

    @property
    def ttl(self) -> timedelta:
        return timedelta(minutes=self.cache_validation_minutes)

    @property
    def grace(self) -> timedelta:
        return timedelta(days=self.offline_grace_days)

    def _sessions(self):
        if self._session_factory is None:
            with self._init_lock:
                if self._session_factory is None:
                    self._engine = create_cache_engine(self.db_path)
                    self._session_factory = create_session_factory(self._engine)
        return self._session_factory

    def close(self) -> None:
        """Dispose of the engine and its pooled connections; reopened lazily on next use."""
        with self._init_lock:
            engine, self._engine = self._engine, None
            self._session_factory = None
        if engine is not None:
            engine.dispose()

    def build_entry(self, license_key: str, license: License, now: datetime) -> CacheEntry:
        return CacheEntry(
            product_slug=self.product_slug,
            license_key=license_key,
            license=license,
            cached_at=now,
            validated_offline_until=now + self.grace,
            cache_validation_minutes=self.cache_validation_minutes,
            offline_grace_days=self.offline_grace_days,
        )

    def classify(self, entry: CacheEntry, now: datetime) -> CacheState:
        """
        Classify ``entry`` under the current policy.

        An entry written under different policy windows is never fresh,
        and its grace window is the narrower of the old and new one.
        """
        if not self.enabled:
            return CacheState.EXPIRED

        grace = min(self.grace, timedelta(days=entry.offline_grace_days))
        state = classify(now, entry.cached_at, self.ttl, grace)

        policy_changed = (
            entry.cache_validation_minutes != self.cache_validation_minutes
            or entry.offline_grace_days != self.offline_grace_days
        )
        if policy_changed and state is CacheState.FRESH:
            logger.debug("Cache policy changed since entry was written; forcing revalidation")
            return CacheState.STALE_VALID
        return state

    def read(self, license_key: str) -> Optional[CacheEntry]:
        if not self.enabled:
            return None

        try:
            with self._sessions()() as db:
                row = db.execute(
                    select(LocalLicenseCache).where(
                        LocalLicenseCache.product_slug == self.product_slug,
                        LocalLicenseCache.license_key == license_key,
                    )
                ).scalar_one_or_none()

                if row is None:
                    return None

                return CacheEntry(
                    product_slug=row.product_slug,
                    license_key=row.license_key,
                    license=License.model_validate(row.license_data),
                    cached_at=_from_db(row.cached_at),
                    validated_offline_until=_from_db(row.validated_offline_until),
                    cache_validation_minutes=row.cache_validation_minutes,
                    offline_grace_days=row.offline_grace_days,
                )
        except (OSError, SQLAlchemyError, ValueError) as e:
            logger.warning(f"Could not read license cache: {e}")
            return None

    def write(self, entry: CacheEntry) -> None:
        """Upsert ``entry``. Raises CacheWriteFailure when it cannot be persisted."""
        if not self.enabled:
            return

        values = {
            "product_slug": entry.product_slug,
            "license_key": entry.license_key,
            "license_data": entry.license.model_dump(mode="json", by_alias=True),
            "cached_at": _to_db(entry.cached_at),
            "validated_offline_until": _to_db(entry.validated_offline_until),
            "cache_validation_minutes": entry.cache_validation_minutes,
            "offline_grace_days": entry.offline_grace_days,
        }
        statement = insert(LocalLicenseCache).values(**values)
        statement = statement.on_conflict_do_update(
            index_elements=["product_slug", "license_key"],
            set_={k: v for k, v in values.items() if k not in ("product_slug", "license_key")},
        )

        try:
            with self._sessions()() as db:
                db.execute(statement)
                db.commit()
        except (OSError, SQLAlchemyError) as e:
            raise CacheWriteFailure(f"Could not write license cache to {self.db_path}: {e}") from e

        logger.debug("License cache saved")

    def clear(self, license_key: Optional[str] = None) -> None:
        """Remove the entry for ``license_key``, or every entry of this product."""
        if not self.enabled:
            return

        statement = delete(LocalLicenseCache).where(LocalLicenseCache.product_slug == self.product_slug)
        if license_key is not None:
            statement = statement.where(LocalLicenseCache.license_key == license_key)

        try:
            with self._sessions()() as db:
                db.execute(statement)
                db.commit()
        except (OSError, SQLAlchemyError) as e:
            logger.warning(f"Could not clear license cache: {e}")
