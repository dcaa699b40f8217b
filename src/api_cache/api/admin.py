"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from dataclasses import asdict
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

if TYPE_CHECKING:
    from api_cache.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


def _container(request: Request) -> AppContainer:
    return request.app.state.container


def _known_client(container: AppContainer, client_name: str) -> str:
    if client_name not in container.settings.clients:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown client: {client_name}",
        )
    return client_name


@router.get("/clients", dependencies=[Depends(require_admin)])
def list_clients(request: Request) -> dict[str, object]:
    """Return cache and rate-limit state for every configured client."""
    container = _container(request)
    clients = []
    for client_name in container.settings.clients:
        stats = container.cache_manager.stats(client_name)
        rate_limit = container.rate_limiter.status(client_name)
        clients.append(
            {
                **asdict(stats),
                "remaining_attempts": rate_limit.remaining,
                "available_in": rate_limit.available_in,
            }
        )
    return {"clients": clients}


@router.delete("/clients/{client_name}/expired", dependencies=[Depends(require_admin)])
def delete_client_expired(client_name: str, request: Request) -> dict[str, object]:
    """Sweep expired responses for one client."""
    container = _container(request)
    _known_client(container, client_name)
    deleted = container.cache_manager.delete_expired(client_name)
    return {"client": client_name, "deleted": deleted}


@router.delete("/expired", dependencies=[Depends(require_admin)])
def delete_all_expired(request: Request) -> dict[str, object]:
    """Sweep expired responses for every configured client."""
    container = _container(request)
    return {"deleted": container.cache_manager.delete_expired()}


@router.delete(
    "/clients/{client_name}/rate-limit", dependencies=[Depends(require_admin)]
)
def clear_rate_limit(client_name: str, request: Request) -> dict[str, object]:
    """Reset a client's rate-limit window."""
    container = _container(request)
    _known_client(container, client_name)
    container.cache_manager.clear_rate_limit(client_name)
    return {"client": client_name, "status": "cleared"}


@router.delete(
    "/clients/{client_name}/responses", dependencies=[Depends(require_admin)]
)
def clear_responses(client_name: str, request: Request) -> dict[str, object]:
    """Delete every cached response for a client."""
    container = _container(request)
    _known_client(container, client_name)
    deleted = container.cache_manager.clear_table(client_name)
    return {"client": client_name, "deleted": deleted}
