"""
Marrow: article extraction from parsed HTML documents.
"""

from typing import Any, Optional

from marrow.configuration_manager import ExtractorConfig, ResolverConfig, ScoringConfig
from marrow.exceptions import (
    ContentNotFound,
    DuplicateRuleSetError,
    ExtractionTimeout,
    MalformedSelectorError,
    MarrowError,
    RuleSetValidationError,
    TransformFailure,
)
from marrow.extractors.factory import ExtractorFactory
from marrow.selectors.config import (
    AllOf,
    ContentFieldSpec,
    Custom,
    FieldSpec,
    Literal,
    RenameTag,
    RuleSet,
    Simple,
    WithAttribute,
)
from marrow.selectors.registry import Registry
from marrow.selectors.resolver import RuleSetRef
from marrow.types import ExtractionOptions, FieldIssue, ResolverTier, Result

__version__ = "0.1.0"


def parse(html: str, url: Optional[str] = None, **options: Any) -> Result:
    """
    Extract an article from raw HTML with the bundled rule sets.

    A fresh factory is built for every call; create an ExtractorFactory
    directly to reuse rules across documents.
    """
    return ExtractorFactory.create_default().parse(html, url, ExtractionOptions.from_dict(options))


__all__ = [
    "AllOf",
    "ContentFieldSpec",
    "ContentNotFound",
    "Custom",
    "DuplicateRuleSetError",
    "ExtractionOptions",
    "ExtractionTimeout",
    "ExtractorConfig",
    "ExtractorFactory",
    "FieldIssue",
    "FieldSpec",
    "Literal",
    "MalformedSelectorError",
    "MarrowError",
    "Registry",
    "RenameTag",
    "ResolverConfig",
    "ResolverTier",
    "Result",
    "RuleSet",
    "RuleSetRef",
    "RuleSetValidationError",
    "ScoringConfig",
    "Simple",
    "TransformFailure",
    "WithAttribute",
    "parse",
]
