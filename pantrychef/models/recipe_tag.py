"""
Recipe tag model. (recipe_id, tag) is intentionally not unique.
"""
import uuid

from sqlalchemy import Column, ForeignKey, String, Uuid
from sqlalchemy.orm import relationship

from pantrychef.models.database import Base


class RecipeTag(Base):
    __tablename__ = "recipe_tags"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    recipe_id = Column(
        Uuid, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    tag = Column(String, nullable=False, index=True)

    # Relationship
    recipe = relationship("Recipe", back_populates="tags")

    def __repr__(self):
        return f"<RecipeTag(recipe_id='{self.recipe_id}', tag='{self.tag}')>"
