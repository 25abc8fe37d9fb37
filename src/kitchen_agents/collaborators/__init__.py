"""Data sources the agents call through tools."""

from .places import PlaceSearch, UnavailablePlaceSearch, build_place_registry
from .recipes import InMemoryRecipeBook, RecipeBook, RecipeDraft, build_recipe_registry

__all__ = [
    "PlaceSearch",
    "UnavailablePlaceSearch",
    "build_place_registry",
    "RecipeBook",
    "InMemoryRecipeBook",
    "RecipeDraft",
    "build_recipe_registry",
]
