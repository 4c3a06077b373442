import logging

from fastapi import FastAPI, Depends, HTTPException

from . import __version__, global_client
from .config import ClientConfig
from .errors import InitError, Uninitialized
from .license_client import LicenseClient
from .machine_identity import get_system_info
from .models import (
    DeactivationResponse,
    FeatureCheckRequest,
    FeatureCheckResponse,
    HealthCheckResponse,
    LicenseKeyRequest,
    LicenseStatusResponse,
    LicenseValidationResponse,
    LicenseResult,
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="IronLicensing Local License Service",
    description="Local license status and feature gating for applications on this machine",
    version=__version__,
)


def get_license_client() -> LicenseClient:
    try:
        return global_client.get_client()
    except Uninitialized as e:
        raise HTTPException(status_code=503, detail=str(e))


def _validation_response(result: LicenseResult) -> dict:
    return {
        "valid": result.valid,
        "license": result.license.model_dump(mode="json", by_alias=True) if result.license else None,
        "cached": result.cached,
        "inGracePeriod": result.in_grace_period,
        "error": result.error,
    }


# API Endpoints
@app.post("/api/license/validate", response_model=LicenseValidationResponse)
def validate_license(request: LicenseKeyRequest, client: LicenseClient = Depends(get_license_client)):
    """
    Validate a license key.

    Uses the offline cache while it is fresh; if the license server is
    unreachable, a cached license inside the grace period is still valid.
    """
    return _validation_response(client.validate(request.licenseKey))


@app.post("/api/license/activate", response_model=LicenseValidationResponse)
def activate_license(request: LicenseKeyRequest, client: LicenseClient = Depends(get_license_client)):
    """
    Activate a license key on this machine.
    """
    result = client.activate_with_name(request.licenseKey, request.machineName)

    if not result.valid:
        raise HTTPException(status_code=400, detail=result.error)

    return _validation_response(result)


@app.post("/api/license/deactivate", response_model=DeactivationResponse)
def deactivate_license(client: LicenseClient = Depends(get_license_client)):
    return {"success": client.deactivate()}


@app.get("/api/license/status", response_model=LicenseStatusResponse)
def get_license_status(client: LicenseClient = Depends(get_license_client)):
    """
    Get the current license status held by this process.
    """
    license = client.license()
    return {
        "hasLicense": license is not None,
        "status": client.status().value,
        "licensed": client.is_licensed(),
        "trial": client.is_trial(),
        "licenseKey": client.license_key(),
        "licenseType": license.license_type.value if license else None,
        "expiresAt": license.expires_at.isoformat() if license and license.expires_at else None,
        "features": [f.key for f in license.features if f.enabled] if license else [],
        "machineId": client.machine_id(),
    }


@app.post("/api/license/feature/check", response_model=FeatureCheckResponse)
def check_feature(request: FeatureCheckRequest, client: LicenseClient = Depends(get_license_client)):
    """
    Check if a feature is available based on license.
    """
    return {"featureKey": request.featureKey, "available": client.has_feature(request.featureKey)}


@app.get("/health", response_model=HealthCheckResponse)
def health_check():
    """Liveness of the local license service, with this machine's id once the client is initialized."""
    machine_id = global_client.machine_id() if global_client.is_initialized() else None
    return {
        "status": "healthy",
        "service": "license-client",
        "version": __version__,
        "machineId": machine_id,
        "system": get_system_info(),
    }


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    try:
        global_client.init_with_config(ClientConfig())
    except InitError as e:
        logger.error(f"License client not initialized: {e}")
        raise SystemExit(1)

    uvicorn.run(app, host="127.0.0.1", port=8000)
