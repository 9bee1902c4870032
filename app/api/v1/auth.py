from __future__ import annotations

import hmac

from fastapi import BackgroundTasks, Depends, Header, Security
from fastapi.security import APIKeyHeader

from app.application.exceptions import PermissionDeniedError
from app.application.use_cases.api_keys import ApiKeyRegistry
from app.domain.entities.api_key import ApiKey
from app.wiring.dependencies import Container, get_api_key_registry, get_container

# auto_error=False: a missing key means anonymous access, not a 403.
API_KEY_HEADER = APIKeyHeader(name="X-API-Key", auto_error=False)


def optional_api_key(
    background_tasks: BackgroundTasks,
    api_key: str | None = Security(API_KEY_HEADER),
    registry: ApiKeyRegistry = Depends(get_api_key_registry),
    container: Container = Depends(get_container),
) -> ApiKey | None:
    """
    Resolve the caller's key context. Raises InvalidKeyError (401) for a
    presented key that is unknown or revoked. Usage is recorded after the
    response has been sent.
    """
    key = registry.validate(api_key)
    if key is not None:
        container.meter.record_key(key.id)
        background_tasks.add_task(registry.record_usage, key.id)
    return key


def require_admin(
    x_admin_token: str | None = Header(None, alias="X-Admin-Token"),
    container: Container = Depends(get_container),
) -> None:
    expected = container.settings.ADMIN_TOKEN
    if not expected or not x_admin_token or not hmac.compare_digest(expected, x_admin_token):
        raise PermissionDeniedError("Admin token required")
