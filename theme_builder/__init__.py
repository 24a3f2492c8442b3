"""
theme_builder — moteur d'édition de documents par blocs.

Usage:
    from theme_builder import BuilderController, DragSource

    ctrl = BuilderController()
    ctrl.drop(DragSource(kind="library-block", block_type="text"), "canvas")
    ctrl.set_metadata(name="Fiche contact")
    schema = ctrl.save(store)
    puck = theme_to_puck(schema)
"""
__version__ = "0.3.0"

from .blocks import BlockDefinition, BlockRegistry, PropField, default_registry, register_all_blocks
from .controller import BuilderController, DragSource, Droppable, Rect, resolve_drop_target
from .core.schemas import BuilderSnapshot, ThemeBlock, ThemeSchema, ThemeValidationError, VisibilityCondition
from .history import HistoryManager
from .migration import load_theme_document, migrate_document, safe_migrate, validate_migrated
from .preview import FieldMetadata, RenderContext, field_warnings, generate_sample_record, visible_blocks
from .puck import PuckData, puck_to_theme, theme_to_puck
from .visibility import evaluate, evaluate_all, evaluate_any

__all__ = [
    "__version__",
    # Blocs
    "BlockDefinition", "BlockRegistry", "PropField", "default_registry", "register_all_blocks",
    # Document
    "ThemeBlock", "ThemeSchema", "VisibilityCondition", "BuilderSnapshot", "ThemeValidationError",
    # Édition
    "BuilderController", "DragSource", "Droppable", "Rect", "resolve_drop_target", "HistoryManager",
    # Format / migration
    "PuckData", "theme_to_puck", "puck_to_theme",
    "load_theme_document", "migrate_document", "safe_migrate", "validate_migrated",
    # Rendu
    "FieldMetadata", "RenderContext", "generate_sample_record", "field_warnings", "visible_blocks",
    "evaluate", "evaluate_all", "evaluate_any",
]
