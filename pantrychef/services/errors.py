# pantrychef/services/errors.py
"""
Error taxonomy for the recipe workflow.

Every error carries a stable `code` (used by the HTTP layer and in logs) and a
single human-readable message.
"""
from __future__ import annotations

import enum
from typing import Any, Dict, Optional


class PantryChefError(Exception):
    code = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def diagnostics(self) -> Dict[str, Any]:
        return {}


class RecipeValidationError(PantryChefError):
    """Input rejected locally; nothing was sent upstream or written."""

    code = "validation_error"


class UnauthenticatedError(PantryChefError):
    """The operation needs a signed-in user and none was supplied."""

    code = "unauthenticated"

    def __init__(self, message: str = "Please sign in to continue") -> None:
        super().__init__(message)


class StoreUnavailableError(PantryChefError):
    code = "store_unavailable"


class GenerationErrorKind(str, enum.Enum):
    MALFORMED_RESPONSE = "malformed_response"
    SERVICE_UNAVAILABLE = "service_unavailable"


class GenerationError(PantryChefError):
    code = "generation_error"

    def __init__(
        self,
        kind: GenerationErrorKind,
        message: str,
        upstream_message: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.upstream_message = upstream_message

    def diagnostics(self) -> Dict[str, Any]:
        diag: Dict[str, Any] = {"kind": self.kind.value}
        if self.upstream_message:
            diag["upstream_message"] = self.upstream_message
        return diag


class CommitError(PantryChefError):
    """
    A write stage failed. When `recipe_id` is set the recipe row had been
    created; `compensated` tells whether it was removed again.
    """

    code = "commit_error"

    def __init__(
        self,
        stage: str,
        message: str,
        recipe_id: Optional[str] = None,
        compensated: bool = True,
    ) -> None:
        super().__init__(message)
        self.stage = stage
        self.recipe_id = recipe_id
        self.compensated = compensated

    def diagnostics(self) -> Dict[str, Any]:
        return {
            "stage": self.stage,
            "recipe_id": self.recipe_id,
            "compensated": self.compensated,
        }


class RecipeNotFound(PantryChefError):
    code = "not_found"

    def __init__(self, recipe_id: str) -> None:
        super().__init__("Recipe not found")
        self.recipe_id = recipe_id

    def diagnostics(self) -> Dict[str, Any]:
        return {"recipe_id": self.recipe_id}


class ToggleError(PantryChefError):
    code = "toggle_error"
