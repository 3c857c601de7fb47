"""
Type definitions and data classes shared across the extraction core.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from marrow.exceptions import (
    ContentNotFound,
    ExtractionTimeout,
    MalformedSelectorError,
    TransformFailure,
)


FieldValue = Union[str, List[str], None]

# Fields every Result carries, in output order
RESULT_FIELDS: Tuple[str, ...] = (
    "title",
    "content",
    "author",
    "date_published",
    "lead_image_url",
    "dek",
    "next_page_url",
    "url",
    "domain",
    "excerpt",
    "word_count",
    "direction",
)

# Fields a RuleSet may declare selectors for
SELECTABLE_FIELDS: Tuple[str, ...] = (
    "title",
    "author",
    "date_published",
    "lead_image_url",
    "dek",
    "next_page_url",
    "excerpt",
    "url",
)


class ResolverTier(str, Enum):
    """Which step of the resolution chain produced a rule set."""
    HOSTNAME = "hostname"
    BASE_DOMAIN = "base_domain"
    DETECTOR = "detector"
    GENERIC = "generic"


class ErrorCategory(str, Enum):
    """Categories of degradations recorded during extraction."""
    EMPTY_FIELD = "empty_field"
    NOT_FOUND = "not_found"
    TIMEOUT = "timeout"
    MALFORMED_SELECTOR = "malformed_selector"
    TRANSFORM_FAILURE = "transform_failure"
    UNEXPECTED = "unexpected"


class TextDirection(str, Enum):
    LTR = "ltr"
    RTL = "rtl"
    BIDI = "bidi"
    NONE = ""


@dataclass
class FieldIssue:
    """A recoverable problem met while extracting one field."""
    field: str
    category: ErrorCategory
    message: str
    timestamp: float = field(default_factory=lambda: datetime.now().timestamp())

    @classmethod
    def from_exception(cls, field_name: str, error: Exception) -> 'FieldIssue':
        """Create a FieldIssue from an exception."""
        error_types = [
            (MalformedSelectorError, ErrorCategory.MALFORMED_SELECTOR),
            (TransformFailure, ErrorCategory.TRANSFORM_FAILURE),
            (ExtractionTimeout, ErrorCategory.TIMEOUT),
            (ContentNotFound, ErrorCategory.NOT_FOUND),
        ]

        category = ErrorCategory.UNEXPECTED
        for error_type, error_category in error_types:
            if isinstance(error, error_type):
                category = error_category
                break

        return cls(
            field=field_name,
            category=category,
            message=str(error)[:200],
        )


@dataclass
class ExtractionOptions:
    """Caller options for a single extraction."""
    content_only: bool = False
    force_fallback: bool = False
    # Try the generic rule set when a site rule set leaves a field empty
    fallback: bool = True
    extract_html: Dict[str, bool] = field(default_factory=lambda: {"content": True})

    def wants_html(self, field_name: str) -> bool:
        return self.extract_html.get(field_name, False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ExtractionOptions':
        extract_html = {"content": True}
        extract_html.update(data.get("extract_html") or {})
        return cls(
            content_only=bool(data.get("content_only", False)),
            force_fallback=bool(data.get("force_fallback", False)),
            fallback=bool(data.get("fallback", True)),
            extract_html=extract_html,
        )


@dataclass
class Result:
    """Structured article fields produced for one document."""
    title: Optional[str] = None
    content: Optional[str] = None
    author: FieldValue = None
    date_published: Optional[str] = None
    lead_image_url: Optional[str] = None
    dek: Optional[str] = None
    next_page_url: Optional[str] = None
    url: Optional[str] = None
    domain: Optional[str] = None
    excerpt: Optional[str] = None
    word_count: int = 0
    direction: str = TextDirection.NONE.value
    extended: Dict[str, FieldValue] = field(default_factory=dict)

    # Provenance
    rule_set: Optional[str] = None
    resolver_tier: Optional[ResolverTier] = None
    content_from_scoring: bool = False
    issues: List[FieldIssue] = field(default_factory=list)
    processing_time: float = 0.0

    def add_issue(self, field_name: str, error: Exception) -> FieldIssue:
        issue = FieldIssue.from_exception(field_name, error)
        self.issues.append(issue)
        return issue

    def to_dict(self) -> Dict[str, Any]:
        """Flatten to the fixed field set plus extended fields."""
        data: Dict[str, Any] = {name: getattr(self, name) for name in RESULT_FIELDS}
        for name, value in self.extended.items():
            if name not in data:
                data[name] = value
        return data

    @property
    def is_empty(self) -> bool:
        return not self.content and not self.title


@dataclass
class ValidationResult:
    """Result of rule set or configuration validation."""
    is_valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add_error(self, message: str) -> None:
        self.errors.append(message)
        self.is_valid = False

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)
