"""Core module pour theme_builder."""
from .schemas import (
    BuilderSnapshot,
    ThemeBlock,
    ThemeSchema,
    ThemeValidationError,
    VisibilityCondition,
    now_iso,
)

__all__ = [
    "BuilderSnapshot",
    "ThemeBlock",
    "ThemeSchema",
    "ThemeValidationError",
    "VisibilityCondition",
    "now_iso",
]
