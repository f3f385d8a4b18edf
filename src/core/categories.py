"""
Category registry for the receipt client.
Spending categories are a closed set with an explicit "other" fallback, since
the AI classifier on the backend may emit values the client has never seen.
"""

from enum import Enum
from typing import Optional, Tuple, Union

from pydantic import BaseModel


class Category(str, Enum):
    """Known spending categories."""

    GROCERIES = "groceries"
    RESTAURANT = "restaurant"
    GAS = "gas"
    SHOPPING = "shopping"
    ENTERTAINMENT = "entertainment"
    HEALTH = "health"
    TRANSPORT = "transport"
    OTHER = "other"

    @classmethod
    def coerce(cls, value: Union["Category", str, None]) -> "Category":
        """Map any raw category value to a member, falling back to OTHER.

        Args:
            value: Category member, raw string from the backend, or None

        Returns:
            Matching Category, or Category.OTHER when unrecognized
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return cls.OTHER
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.OTHER


class CategoryDescriptor(BaseModel):
    """Display metadata for one entry of the category picker."""

    display_name: str
    value: Optional[Category] = None
    icon: str

    model_config = {"frozen": True}


# value=None is the "all categories" entry
CATEGORIES: Tuple[CategoryDescriptor, ...] = (
    CategoryDescriptor(display_name="All", value=None, icon="🏷️"),
    CategoryDescriptor(display_name="Groceries", value=Category.GROCERIES, icon="🛒"),
    CategoryDescriptor(display_name="Restaurant", value=Category.RESTAURANT, icon="🍽️"),
    CategoryDescriptor(display_name="Gas", value=Category.GAS, icon="⛽"),
    CategoryDescriptor(display_name="Shopping", value=Category.SHOPPING, icon="🛍️"),
    CategoryDescriptor(display_name="Entertainment", value=Category.ENTERTAINMENT, icon="🎬"),
    CategoryDescriptor(display_name="Health", value=Category.HEALTH, icon="💊"),
    CategoryDescriptor(display_name="Transport", value=Category.TRANSPORT, icon="🚗"),
    CategoryDescriptor(display_name="Other", value=Category.OTHER, icon="📦"),
)

CATEGORY_COLORS = {
    Category.GROCERIES: "#28a745",
    Category.RESTAURANT: "#fd7e14",
    Category.GAS: "#6f42c1",
    Category.SHOPPING: "#e83e8c",
    Category.ENTERTAINMENT: "#20c997",
    Category.HEALTH: "#17a2b8",
    Category.TRANSPORT: "#ffc107",
    Category.OTHER: "#6c757d",
}


def color_for(category: Union[Category, str, None]) -> str:
    """Get the display color for a category; unknown values use the "other" color."""
    return CATEGORY_COLORS[Category.coerce(category)]


def descriptor_for(category: Union[Category, str, None]) -> CategoryDescriptor:
    """Get the registry entry for a category value.

    None selects the "all categories" entry; anything unrecognized resolves
    to the "other" entry.
    """
    if category is None:
        return CATEGORIES[0]
    coerced = Category.coerce(category)
    for descriptor in CATEGORIES:
        if descriptor.value == coerced:
            return descriptor
    return CATEGORIES[-1]


def display_name_for(category: Union[Category, str, None]) -> str:
    return descriptor_for(category).display_name
