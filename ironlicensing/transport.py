import logging
from typing import Optional, Dict, Any, List

import httpx
from pydantic import ValidationError

from .config import ClientConfig
from .errors import (
    InvalidCredentials,
    LicenseNotFound,
    NetworkFailure,
    RemoteAuthorityError,
    ServiceUnavailable,
    error_for_code,
)
from .models import CheckoutResult, LicenseResult, ProductTier

logger = logging.getLogger(__name__)


def _preview(license_key: str) -> str:
    return f"{license_key[:10]}..."


class RemoteAuthorityClient:
    """
    Synchronous HTTP client for the licensing server.

    Every call either returns the parsed response or raises a
    RemoteAuthorityError subclass; it never touches local state.
    """

    def __init__(self, config: ClientConfig, http_client: Optional[httpx.Client] = None):
        self.base_url = config.api_base_url.rstrip("/")
        self.public_key = config.public_key
        self.product_slug = config.product_slug
        self.http_client = http_client or httpx.Client(timeout=config.http_timeout)

    def close(self) -> None:
        self.http_client.close()

    @property
    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "X-Public-Key": self.public_key,
            "X-Product-Slug": self.product_slug,
        }

    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        try:
            response = self.http_client.request(
                method,
                f"{self.base_url}{path}",
                json=payload,
                headers=self._headers,
            )
        except httpx.TimeoutException as e:
            raise NetworkFailure(f"Request to {path} timed out: {e}") from e
        except httpx.HTTPError as e:
            raise NetworkFailure(f"HTTP error during {path}: {e}") from e

        if response.is_success:
            try:
                return response.json()
            except ValueError as e:
                raise RemoteAuthorityError(f"Malformed response from {path}", code="invalid_response") from e

        raise self._error_from_response(response)

    @staticmethod
    def _error_from_response(response: httpx.Response) -> RemoteAuthorityError:
        error = None
        try:
            body = response.json()
            if isinstance(body, dict):
                error = body.get("error")
        except ValueError:
            pass

        mapped = error_for_code(error)
        if type(mapped) is not RemoteAuthorityError:
            return mapped

        status = response.status_code
        if status in (401, 403):
            return InvalidCredentials(error)
        if status == 404:
            return LicenseNotFound(error)
        if status >= 500:
            return ServiceUnavailable(error)
        return RemoteAuthorityError(error or f"Request failed with status {status}")

    def _license_call(self, path: str, payload: Dict[str, Any]) -> LicenseResult:
        data = self._request("POST", path, payload)
        try:
            result = LicenseResult.model_validate(data)
        except ValidationError as e:
            raise RemoteAuthorityError(f"Malformed response from {path}", code="invalid_response") from e

        if result.license is None:
            if result.valid:
                raise RemoteAuthorityError(f"No license in response from {path}", code="invalid_response")
            raise error_for_code(result.error)

        return result

    def validate(self, license_key: str, machine_id: str) -> LicenseResult:
        logger.debug(f"Validating: {_preview(license_key)}")
        return self._license_call(
            "/api/v1/validate",
            {"licenseKey": license_key, "machineId": machine_id},
        )

    def activate(self, license_key: str, machine_id: str, machine_name: str, platform: str) -> LicenseResult:
        logger.debug(f"Activating: {_preview(license_key)}")
        return self._license_call(
            "/api/v1/activate",
            {
                "licenseKey": license_key,
                "machineId": machine_id,
                "machineName": machine_name,
                "platform": platform,
            },
        )

    def deactivate(self, license_key: str, machine_id: str) -> bool:
        logger.debug("Deactivating license")
        self._request(
            "POST",
            "/api/v1/deactivate",
            {"licenseKey": license_key, "machineId": machine_id},
        )
        return True

    def start_trial(self, email: str, machine_id: str) -> LicenseResult:
        logger.debug(f"Starting trial for: {email}")
        return self._license_call(
            "/api/v1/trial",
            {"email": email, "machineId": machine_id},
        )

    def get_tiers(self) -> List[ProductTier]:
        logger.debug("Fetching product tiers")
        data = self._request("GET", "/api/v1/tiers")
        try:
            return [ProductTier.model_validate(tier) for tier in data.get("tiers", [])]
        except (AttributeError, ValidationError) as e:
            raise RemoteAuthorityError("Malformed tiers response", code="invalid_response") from e

    def start_checkout(self, tier_id: str, email: str) -> CheckoutResult:
        logger.debug(f"Starting checkout for tier: {tier_id}")
        data = self._request("POST", "/api/v1/checkout", {"tierId": tier_id, "email": email})
        if not isinstance(data, dict):
            raise RemoteAuthorityError("Malformed checkout response", code="invalid_response")
        try:
            return CheckoutResult.model_validate({**data, "success": True})
        except ValidationError as e:
            raise RemoteAuthorityError("Malformed checkout response", code="invalid_response") from e
