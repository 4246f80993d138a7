"""
Saved recipe model: a user's bookmark of a recipe.
"""
import uuid

from sqlalchemy import Column, DateTime, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from pantrychef.models.database import Base


class SavedRecipe(Base):
    __tablename__ = "saved_recipes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, nullable=False, index=True)
    recipe_id = Column(
        Uuid, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationship
    recipe = relationship("Recipe", back_populates="saved_by")

    # Unique constraint: at most one row per (user, recipe)
    __table_args__ = (
        UniqueConstraint("user_id", "recipe_id", name="saved_recipes_user_recipe_uc"),
    )

    def __repr__(self):
        return f"<SavedRecipe(user_id='{self.user_id}', recipe_id='{self.recipe_id}')>"
