"""
Ingredient model. order_index is zero-based and defines display order.
"""
import uuid

from sqlalchemy import Column, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import relationship

from pantrychef.models.database import Base


class Ingredient(Base):
    __tablename__ = "ingredients"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    recipe_id = Column(
        Uuid, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String, nullable=False)
    quantity = Column(String, nullable=True)  # free text: "1 1/2", "a pinch"
    unit = Column(String, nullable=True)
    order_index = Column(Integer, nullable=False, default=0)

    # Relationship
    recipe = relationship("Recipe", back_populates="ingredients")

    def __repr__(self):
        return f"<Ingredient(recipe_id='{self.recipe_id}', name='{self.name}')>"
