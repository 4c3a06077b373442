from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, List

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Accepts the server's camelCase keys as well as snake_case field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LicenseStatus(str, Enum):
    VALID = "valid"
    EXPIRED = "expired"
    SUSPENDED = "suspended"
    REVOKED = "revoked"
    INVALID = "invalid"
    TRIAL = "trial"
    TRIAL_EXPIRED = "trial_expired"
    NOT_ACTIVATED = "not_activated"
    UNKNOWN = "unknown"

    @classmethod
    def _missing_(cls, value):
        return cls.UNKNOWN


class LicenseType(str, Enum):
    PERPETUAL = "perpetual"
    SUBSCRIPTION = "subscription"
    TRIAL = "trial"


# Statuses under which the application is entitled to run
LICENSED_STATUSES = frozenset({LicenseStatus.VALID, LicenseStatus.TRIAL})


class Feature(WireModel):
    key: str
    name: Optional[str] = None
    enabled: bool = True
    description: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class License(WireModel):
    id: Optional[str] = None
    key: str
    status: LicenseStatus = LicenseStatus.NOT_ACTIVATED
    license_type: LicenseType = Field(default=LicenseType.PERPETUAL, alias="type")
    email: Optional[str] = None
    name: Optional[str] = None
    company: Optional[str] = None
    features: List[Feature] = Field(default_factory=list)
    max_activations: int = Field(default=0, ge=0)
    current_activations: int = Field(default=0, ge=0)
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    last_validated_at: Optional[datetime] = None
    metadata: Optional[Dict[str, Any]] = None

    @field_validator("features")
    @classmethod
    def _unique_feature_keys(cls, features: List[Feature]) -> List[Feature]:
        seen = set()
        unique = []
        for feature in features:
            if feature.key in seen:
                continue
            seen.add(feature.key)
            unique.append(feature)
        return unique

    @property
    def is_licensed(self) -> bool:
        return self.status in LICENSED_STATUSES


class Activation(WireModel):
    id: Optional[str] = None
    machine_id: Optional[str] = None
    machine_name: Optional[str] = None
    platform: Optional[str] = None
    activated_at: Optional[datetime] = None
    last_seen_at: Optional[datetime] = None


class LicenseResult(WireModel):
    valid: bool
    license: Optional[License] = None
    activations: Optional[List[Activation]] = None
    error: Optional[str] = None
    cached: bool = False
    in_grace_period: bool = False

    @classmethod
    def success(cls, license: License) -> "LicenseResult":
        return cls(valid=True, license=license)

    @classmethod
    def failure(cls, error: str) -> "LicenseResult":
        return cls(valid=False, error=error)

    @classmethod
    def from_cache(cls, license: License, in_grace_period: bool = False) -> "LicenseResult":
        valid = license.is_licensed
        return cls(
            valid=valid,
            license=license,
            error=None if valid else license.status.value,
            cached=True,
            in_grace_period=in_grace_period,
        )


class CheckoutResult(WireModel):
    success: bool
    checkout_url: Optional[str] = None
    session_id: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def failure(cls, error: str) -> "CheckoutResult":
        return cls(success=False, error=error)


class ProductTier(WireModel):
    id: str
    slug: str
    name: str
    description: Optional[str] = None
    price: float
    currency: str
    billing_period: Optional[str] = None
    features: List[Feature] = Field(default_factory=list)


class CacheEntry(BaseModel):
    """Last known validation result for one product/key pair."""

    product_slug: str
    license_key: str
    license: License
    cached_at: datetime
    validated_offline_until: datetime
    # Policy windows in force when the entry was written
    cache_validation_minutes: int
    offline_grace_days: int


# Local service request/response models

class LicenseKeyRequest(BaseModel):
    licenseKey: str
    machineName: Optional[str] = None


class LicenseStatusResponse(BaseModel):
    hasLicense: bool
    status: str
    licensed: bool
    trial: bool
    licenseKey: Optional[str] = None
    licenseType: Optional[str] = None
    expiresAt: Optional[str] = None
    features: List[str] = Field(default_factory=list)
    machineId: str


class LicenseValidationResponse(BaseModel):
    valid: bool
    license: Optional[Dict[str, Any]] = None
    cached: bool = False
    inGracePeriod: bool = False
    error: Optional[str] = None


class DeactivationResponse(BaseModel):
    success: bool


class FeatureCheckRequest(BaseModel):
    featureKey: str


class FeatureCheckResponse(BaseModel):
    featureKey: str
    available: bool


class HealthCheckResponse(BaseModel):
    status: str
    service: str
    version: str
    machineId: Optional[str] = None
    system: Optional[Dict[str, Any]] = None
