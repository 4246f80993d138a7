"""Database models for the recipe store."""
from pantrychef.models.database import Base, get_engine, init_db
from pantrychef.models.ingredient import Ingredient
from pantrychef.models.profile import Profile
from pantrychef.models.recipe import Recipe
from pantrychef.models.recipe_step import RecipeStep
from pantrychef.models.recipe_tag import RecipeTag
from pantrychef.models.saved_recipe import SavedRecipe

# Export all models
__all__ = [
    "Base",
    "get_engine",
    "init_db",
    "Recipe",
    "Ingredient",
    "RecipeStep",
    "RecipeTag",
    "SavedRecipe",
    "Profile",
]
