"""
Exceptions raised while building rule registries and extracting documents.
"""
from typing import Any, Dict, List, Optional


class MarrowError(Exception):
    """Base class for all marrow errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class MalformedSelectorError(MarrowError):
    """A rule declares a CSS selector the matcher cannot compile."""

    def __init__(self, selector: str, reason: str = ""):
        message = f"Malformed selector '{selector}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, {"selector": selector})
        self.selector = selector


class TransformFailure(MarrowError):
    """A content transform could not be applied to a matched node."""

    def __init__(self, selector: str, transform: str, reason: str = ""):
        message = f"Transform {transform} failed for '{selector}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, {"selector": selector, "transform": transform})
        self.selector = selector
        self.transform = transform


class ExtractionTimeout(MarrowError):
    """A resolver probe or the scoring pass ran past its deadline."""

    def __init__(self, stage: str, timeout: float):
        super().__init__(
            f"{stage} exceeded its {timeout:.2f}s deadline",
            {"stage": stage, "timeout": timeout},
        )
        self.stage = stage
        self.timeout = timeout


class ContentNotFound(MarrowError):
    """Scoring found no plausible article body."""

    def __init__(self, message: str = "No content candidate scored above zero"):
        super().__init__(message)


class RuleSetValidationError(MarrowError):
    """A rule set definition is structurally invalid."""

    def __init__(self, errors: List[str], source: Optional[str] = None):
        prefix = f"Invalid rule set in {source}" if source else "Invalid rule set"
        super().__init__(f"{prefix}: {'; '.join(errors)}", {"errors": errors, "source": source})
        self.errors = errors


class DuplicateRuleSetError(MarrowError):
    """A rule set with the same domain is already registered."""

    def __init__(self, domain: str):
        super().__init__(f"Rule set for domain '{domain}' is already registered", {"domain": domain})
        self.domain = domain
