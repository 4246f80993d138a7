# pantrychef/models/schemas.py
"""
Typed recipe structures that cross service boundaries.

RecipeCandidate mirrors the generation service's JSON contract (camelCase on
the wire). RecipeSummary / RecipeAggregate are built from store rows by
`from_row`; raw rows never travel further than the services.
"""
from __future__ import annotations

import math
from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator

Difficulty = Literal["easy", "medium", "hard"]
DIFFICULTIES = ("easy", "medium", "hard")

NonEmptyText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
Amount = Union[int, float, str]


def _number_as_text(v: Any) -> Any:
    if v is None:
        return ""
    if isinstance(v, bool):
        return v
    if isinstance(v, float) and v.is_integer():
        return str(int(v))
    if isinstance(v, (int, float)):
        return str(v)
    return v


class NutritionInfo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    calories: Optional[Amount] = None
    protein: Optional[Amount] = None
    carbs: Optional[Amount] = None
    fats: Optional[Amount] = None


class CandidateIngredient(BaseModel):
    name: NonEmptyText
    quantity: str
    unit: str = ""

    @field_validator("quantity", "unit", mode="before")
    @classmethod
    def _as_text(cls, v: Any) -> Any:
        return _number_as_text(v)


class RecipeCandidate(BaseModel):
    """An unpersisted recipe, as produced by the generation service or a user."""

    model_config = ConfigDict(populate_by_name=True)

    title: NonEmptyText
    description: str
    ingredients: List[CandidateIngredient] = Field(min_length=1)
    steps: List[NonEmptyText] = Field(min_length=1)
    cook_time: int = Field(alias="cookTime", ge=0)
    servings: int = Field(ge=1)
    difficulty: Difficulty
    tags: List[NonEmptyText]
    nutrition_info: Optional[NutritionInfo] = Field(default=None, alias="nutritionInfo")

    @field_validator("cook_time", "servings", mode="before")
    @classmethod
    def _whole_number(cls, v: Any) -> Any:
        if isinstance(v, float):
            if not math.isfinite(v):
                raise ValueError("must be a finite number")
            return round(v)
        return v

    @field_validator("tags", mode="before")
    @classmethod
    def _drop_blank_tags(cls, v: Any) -> Any:
        if isinstance(v, list):
            return [t for t in v if not (isinstance(t, str) and not t.strip())]
        return v

    @field_validator("difficulty", mode="before")
    @classmethod
    def _lower_difficulty(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v


class IngredientItem(BaseModel):
    name: str
    quantity: str = ""
    unit: str = ""
    order_index: int

    @field_validator("quantity", "unit", mode="before")
    @classmethod
    def _as_text(cls, v: Any) -> Any:
        return _number_as_text(v)


class StepItem(BaseModel):
    step_number: int
    instruction: str


def _tags_from_rows(rows: Optional[List[Dict[str, Any]]]) -> List[str]:
    return [r["tag"] for r in rows or [] if r and r.get("tag") is not None]


class RecipeSummary(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    cook_time: Optional[int] = None
    servings: Optional[int] = None
    difficulty: Optional[str] = None
    created_at: Optional[datetime] = None
    tags: List[str] = Field(default_factory=list)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "RecipeSummary":
        return cls(
            id=str(row["id"]),
            title=row.get("title") or "",
            description=row.get("description"),
            image_url=row.get("image_url"),
            cook_time=row.get("cook_time"),
            servings=row.get("servings"),
            difficulty=row.get("difficulty"),
            created_at=row.get("created_at"),
            tags=_tags_from_rows(row.get("recipe_tags")),
        )


class RecipeAggregate(RecipeSummary):
    """A recipe with its children, plus state derived for one viewer."""

    owner_id: Optional[str] = None
    is_generated: bool = False
    nutrition_info: Optional[NutritionInfo] = None
    ingredients: List[IngredientItem] = Field(default_factory=list)
    steps: List[StepItem] = Field(default_factory=list)
    author_name: Optional[str] = None
    is_saved: bool = False

    @classmethod
    def from_row(
        cls,
        row: Dict[str, Any],
        author_name: Optional[str] = None,
        is_saved: bool = False,
    ) -> "RecipeAggregate":
        summary = RecipeSummary.from_row(row)
        ingredients = [
            IngredientItem(
                name=r.get("name") or "",
                quantity=r.get("quantity"),
                unit=r.get("unit"),
                order_index=r.get("order_index") or 0,
            )
            for r in row.get("ingredients") or []
        ]
        steps = [
            StepItem(step_number=r["step_number"], instruction=r.get("instruction") or "")
            for r in row.get("recipe_steps") or []
        ]
        owner = row.get("user_id")
        return cls(
            **summary.model_dump(),
            owner_id=str(owner) if owner is not None else None,
            is_generated=bool(row.get("is_ai_generated")),
            nutrition_info=row.get("nutrition_info") or None,
            # sorted() is stable: equal keys keep the order the store returned them in
            ingredients=sorted(ingredients, key=lambda i: i.order_index),
            steps=sorted(steps, key=lambda s: s.step_number),
            author_name=author_name,
            is_saved=is_saved,
        )
