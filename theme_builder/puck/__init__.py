"""Puck — schéma du format externe + conversion."""
from .schema import (
    ENVELOPE_KEY,
    BlockExtension,
    PuckComponent,
    PuckData,
    PuckRoot,
    RootExtension,
)
from .converter import block_to_component, component_to_block, puck_to_theme, theme_to_puck

__all__ = [
    "ENVELOPE_KEY",
    "BlockExtension",
    "PuckComponent",
    "PuckData",
    "PuckRoot",
    "RootExtension",
    "block_to_component",
    "component_to_block",
    "puck_to_theme",
    "theme_to_puck",
]
