"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

if TYPE_CHECKING:
    from meal_planner.containers import AppContainer

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


@router.post("/food-embeddings/refresh", dependencies=[Depends(require_admin)])
async def refresh_food_embeddings(request: Request) -> dict[str, object]:
    """Re-embed the food catalog."""
    container: AppContainer = request.app.state.container
    stored = await container.catalog_service.refresh_embeddings()
    return {"status": "ok", "embedded": stored}


@router.get("/food-embeddings/stats", dependencies=[Depends(require_admin)])
async def food_embedding_stats(request: Request) -> dict[str, object]:
    """Return the number of stored food embeddings and the last update."""
    container: AppContainer = request.app.state.container
    stats = container.catalog_service.embedding_stats()
    return {
        "total": stats.total,
        "last_updated": stats.last_updated.isoformat() if stats.last_updated else None,
    }
