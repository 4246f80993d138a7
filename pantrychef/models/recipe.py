"""
Recipe model: the root of the recipe aggregate.
"""
import uuid

from sqlalchemy import JSON, Boolean, CheckConstraint, Column, DateTime, Integer, String, Text, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import false, func

from pantrychef.models.database import Base


class Recipe(Base):
    __tablename__ = "recipes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, nullable=False, index=True)
    title = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=True)
    image_url = Column(String, nullable=True)
    cook_time = Column(Integer, nullable=True)  # minutes
    servings = Column(Integer, nullable=True)
    difficulty = Column(String, nullable=True)
    is_ai_generated = Column(Boolean, nullable=False, default=False, server_default=false())
    nutrition_info = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    # Relationships
    ingredients = relationship(
        "Ingredient",
        back_populates="recipe",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Ingredient.order_index",
    )
    steps = relationship(
        "RecipeStep",
        back_populates="recipe",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="RecipeStep.step_number",
    )
    tags = relationship(
        "RecipeTag", back_populates="recipe", cascade="all, delete-orphan", passive_deletes=True
    )
    saved_by = relationship(
        "SavedRecipe", back_populates="recipe", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        CheckConstraint(
            "difficulty IS NULL OR difficulty IN ('easy', 'medium', 'hard')",
            name="recipes_difficulty_check",
        ),
    )

    def __repr__(self):
        return f"<Recipe(id='{self.id}', title='{self.title}')>"
