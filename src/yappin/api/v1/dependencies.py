"""Shared API dependencies for authentication and service wiring."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from yappin.core.errors import NotAuthenticatedError
from yappin.core.security import decode_access_token
from yappin.core.settings import settings
from yappin.services.runtime import Collaborators, ServiceRegistry
from yappin.store import Store, create_store

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()

_store: Store | None = None


def get_store() -> Store:
    """Return the process-wide store, creating it on first use."""
    global _store
    if _store is None:
        _store = create_store(settings)
    return _store


async def close_store() -> None:
    """Release the process-wide store."""
    global _store
    if _store is not None:
        await _store.close()
        _store = None


StoreDep = Annotated[Store, Depends(get_store)]


def get_current_uid(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
) -> str:
    """Return the user id carried by the bearer token.

    Raises:
        HTTPException: If the token is invalid or expired.
    """
    try:
        return decode_access_token(credentials.credentials)
    except NotAuthenticatedError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=err.detail,
        ) from err


CurrentUidDep = Annotated[str, Depends(get_current_uid)]


def get_services(uid: CurrentUidDep, store: StoreDep) -> ServiceRegistry:
    """Build the services bound to the authenticated caller."""
    return ServiceRegistry(store, Collaborators(current_identity=lambda: uid))


def get_anonymous_services(store: StoreDep) -> ServiceRegistry:
    """Build the services for requests made before signing in."""
    return ServiceRegistry(store, Collaborators(current_identity=lambda: None))


ServicesDep = Annotated[ServiceRegistry, Depends(get_services)]
AnonymousServicesDep = Annotated[ServiceRegistry, Depends(get_anonymous_services)]
