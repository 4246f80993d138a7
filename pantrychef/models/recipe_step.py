"""
Recipe step model. step_number is 1-based.
"""
import uuid

from sqlalchemy import Column, ForeignKey, Integer, Text, Uuid
from sqlalchemy.orm import relationship

from pantrychef.models.database import Base


class RecipeStep(Base):
    __tablename__ = "recipe_steps"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    recipe_id = Column(
        Uuid, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    step_number = Column(Integer, nullable=False)
    instruction = Column(Text, nullable=False)

    # Relationship
    recipe = relationship("Recipe", back_populates="steps")

    def __repr__(self):
        return f"<RecipeStep(recipe_id='{self.recipe_id}', step_number={self.step_number})>"
