from marrow.selectors.config import (
    AllOf,
    ContentFieldSpec,
    Custom,
    FieldSpec,
    Literal,
    RenameTag,
    RuleSet,
    Simple,
    TransformContext,
    WithAttribute,
)
from marrow.selectors.registry import Registry

__all__ = [
    "AllOf",
    "ContentFieldSpec",
    "Custom",
    "FieldSpec",
    "Literal",
    "RenameTag",
    "Registry",
    "RuleSet",
    "Simple",
    "TransformContext",
    "WithAttribute",
]
