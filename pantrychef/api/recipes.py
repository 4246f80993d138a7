# pantrychef/api/recipes.py
"""
HTTP endpoints for the recipe workflow.

Thin transport over the services: resolve the caller's identity, call one
service operation, wrap the result as {"ok": true, "data": ...}. Service
errors become {"ok": false, "error": <code>, "message": ..., "diagnostics": {...}}
via `pantrychef_error_handler`.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from pantrychef.models.schemas import RecipeCandidate, RecipeSummary
from pantrychef.services.browse_service import RECENT_LIMIT, BrowseService
from pantrychef.services.errors import (
    CommitError,
    GenerationError,
    PantryChefError,
    RecipeNotFound,
    RecipeValidationError,
    StoreUnavailableError,
    ToggleError,
    UnauthenticatedError,
)
from pantrychef.services.generation_service import RecipeGenerator
from pantrychef.services.identity import IdentityProvider, bearer_token
from pantrychef.services.persistence_service import RecipePersistence
from pantrychef.services.recipe_reader import RecipeReader
from pantrychef.services.saved_service import SavedRecipeService

logger = logging.getLogger(__name__)
router = APIRouter()

# Singletons
identity_provider = IdentityProvider()
recipe_generator = RecipeGenerator()
recipe_persistence = RecipePersistence()
recipe_reader = RecipeReader()
saved_service = SavedRecipeService()
browse_service = BrowseService()


def get_identity_provider() -> IdentityProvider:
    return identity_provider


def get_generator() -> RecipeGenerator:
    return recipe_generator


def get_persistence() -> RecipePersistence:
    return recipe_persistence


def get_reader() -> RecipeReader:
    return recipe_reader


def get_saved_service() -> SavedRecipeService:
    return saved_service


def get_browse_service() -> BrowseService:
    return browse_service


async def current_user_id(
    authorization: Optional[str] = Header(default=None),
    identity: IdentityProvider = Depends(get_identity_provider),
) -> Optional[str]:
    return await identity.current_user_id(bearer_token(authorization))


# -------------------------
# Request bodies
# -------------------------
class GenerateRequest(BaseModel):
    ingredients: str


class CommitRequest(BaseModel):
    recipe: RecipeCandidate
    is_generated: bool = True
    image_url: Optional[str] = None


class ToggleSavedRequest(BaseModel):
    currently_saved: bool = Field(
        description="Saved state the client last observed for this recipe"
    )


# -------------------------
# Helpers
# -------------------------
_STATUS_BY_ERROR = (
    (RecipeValidationError, 400),
    (UnauthenticatedError, 401),
    (RecipeNotFound, 404),
    (ToggleError, 409),
    (GenerationError, 502),
    (StoreUnavailableError, 503),
    (CommitError, 500),
)


def status_for(exc: PantryChefError) -> int:
    for cls, status in _STATUS_BY_ERROR:
        if isinstance(exc, cls):
            return status
    return 500


async def pantrychef_error_handler(request: Request, exc: PantryChefError) -> JSONResponse:
    status = status_for(exc)
    logger.info(
        "Request %s %s failed: %s (%s)",
        request.method,
        request.url.path,
        exc.code,
        exc.message,
    )
    return JSONResponse(
        {
            "ok": False,
            "error": exc.code,
            "message": exc.message,
            "diagnostics": jsonable_encoder(exc.diagnostics()),
        },
        status_code=status,
    )


def _ok(data: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse({"ok": True, "data": jsonable_encoder(data)}, status_code=status_code)


def _summaries(items: List[RecipeSummary]) -> List[Dict[str, Any]]:
    return [s.model_dump(mode="json") for s in items]


def _require_user(user_id: Optional[str], action: str) -> str:
    if not user_id:
        raise UnauthenticatedError(f"Please sign in to {action}")
    return user_id


# -------------------------
# Routes
# -------------------------
@router.post("/recipes/generate")
async def generate_recipe(
    body: GenerateRequest, generator: RecipeGenerator = Depends(get_generator)
):
    candidate = await generator.generate(body.ingredients)
    return _ok(candidate.model_dump(mode="json", by_alias=True))


@router.post("/recipes")
async def commit_recipe(
    body: CommitRequest,
    user_id: Optional[str] = Depends(current_user_id),
    persistence: RecipePersistence = Depends(get_persistence),
):
    recipe_id = await persistence.commit(
        body.recipe,
        user_id,
        is_generated=body.is_generated,
        image_url=body.image_url,
    )
    return _ok({"id": recipe_id}, status_code=201)


@router.get("/recipes")
async def browse_recipes(
    q: Optional[str] = Query(default=None, description="Case-insensitive title filter"),
    browse: BrowseService = Depends(get_browse_service),
):
    return _ok(_summaries(await browse.browse(q).all()))


@router.get("/recipes/recent")
async def recent_recipes(
    limit: int = Query(default=RECENT_LIMIT, ge=1, le=50),
    browse: BrowseService = Depends(get_browse_service),
):
    return _ok(_summaries(await browse.recent(limit).all()))


@router.get("/recipes/{recipe_id}")
async def get_recipe(
    recipe_id: str,
    user_id: Optional[str] = Depends(current_user_id),
    reader: RecipeReader = Depends(get_reader),
):
    aggregate = await reader.fetch(recipe_id, viewer_id=user_id)
    return _ok(aggregate.model_dump(mode="json"))


@router.post("/recipes/{recipe_id}/saved")
async def toggle_saved(
    recipe_id: str,
    body: ToggleSavedRequest,
    user_id: Optional[str] = Depends(current_user_id),
    saved: SavedRecipeService = Depends(get_saved_service),
):
    new_state = await saved.toggle_saved(user_id, recipe_id, body.currently_saved)
    return _ok({"recipe_id": recipe_id, "is_saved": new_state})


@router.get("/me/recipes")
async def my_recipes(
    user_id: Optional[str] = Depends(current_user_id),
    browse: BrowseService = Depends(get_browse_service),
):
    uid = _require_user(user_id, "see your recipes")
    return _ok(_summaries(await browse.owned_by(uid).all()))


@router.get("/me/saved")
async def my_saved_recipes(
    user_id: Optional[str] = Depends(current_user_id),
    browse: BrowseService = Depends(get_browse_service),
):
    uid = _require_user(user_id, "see your saved recipes")
    return _ok(_summaries(await browse.saved_by(uid).all()))
