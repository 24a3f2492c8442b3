"""
Blocs — registry + catalogue par défaut.
"""
from .base import BlockDefinition, BlockRegistry, PropField, PropOption
from .catalog import DEFAULT_BLOCKS, default_registry, register_all_blocks

__all__ = [
    "BlockDefinition", "BlockRegistry", "PropField", "PropOption",
    "DEFAULT_BLOCKS", "default_registry", "register_all_blocks",
]
