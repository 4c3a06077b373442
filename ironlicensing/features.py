from typing import Optional

from .errors import FeatureRequired
from .models import Feature, License


class FeatureRegistry:
    """
    Entitlement decisions for a license's feature set.

    Keys are matched exactly (case-sensitive). Without a licensed
    license (none held, expired, revoked, ...) nothing is entitled.
    """

    def get_feature(self, license: Optional[License], key: str) -> Optional[Feature]:
        if license is None or not license.is_licensed:
            return None
        for feature in license.features:
            if feature.key == key:
                return feature
        return None

    def has_feature(self, license: Optional[License], key: str) -> bool:
        feature = self.get_feature(license, key)
        return feature is not None and feature.enabled

    def require_feature(self, license: Optional[License], key: str) -> None:
        if not self.has_feature(license, key):
            raise FeatureRequired(key)
