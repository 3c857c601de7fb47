"""
Declarative rule model: selector alternatives, field specs, content
transforms and per-domain rule sets.
"""

import json
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import yaml
from bs4.element import Tag

from marrow.exceptions import RuleSetValidationError
from marrow.types import SELECTABLE_FIELDS, ValidationResult
from marrow.utils.dom import is_valid_selector
from marrow.utils.logger import setup_logger

logger = setup_logger()


@dataclass(frozen=True)
class Literal:
    """A fixed value returned without touching the document."""
    value: str

    def selectors(self) -> List[str]:
        return []

    def to_dict(self) -> Dict[str, Any]:
        return {"literal": self.value}


@dataclass(frozen=True)
class Simple:
    """Text of the nodes matching a selector.

    When pattern is set, a matched value must also match it.
    """
    selector: str
    pattern: Optional[str] = None

    def selectors(self) -> List[str]:
        return [self.selector]

    def to_dict(self) -> Union[str, Dict[str, Any]]:
        if self.pattern is None:
            return self.selector
        return {"selector": self.selector, "pattern": self.pattern}


@dataclass(frozen=True)
class WithAttribute:
    """An attribute read from the nodes matching a selector."""
    selector: str
    attribute: str

    def selectors(self) -> List[str]:
        return [self.selector]

    def to_dict(self) -> Dict[str, Any]:
        return {"selector": self.selector, "attribute": self.attribute}


@dataclass(frozen=True)
class AllOf:
    """Every selector must match; results join in listed order."""
    group: Tuple[str, ...]

    def selectors(self) -> List[str]:
        return list(self.group)

    def to_dict(self) -> Dict[str, Any]:
        return {"all_of": list(self.group)}


SelectorAlternative = Union[Literal, Simple, WithAttribute, AllOf]


def parse_alternative(raw: Any) -> SelectorAlternative:
    """
    Parse one selector alternative from its rule-file form.

    Accepted forms:
        "h1"                                    -> Simple
        {"selector": "h1", "pattern": "^By"}    -> Simple with a value pattern
        {"selector": "meta", "attribute": "x"}  -> WithAttribute
        {"all_of": [".a", ".b"]}                -> AllOf
        {"literal": "value"}                    -> Literal
    """
    if isinstance(raw, (Literal, Simple, WithAttribute, AllOf)):
        return raw
    if isinstance(raw, str):
        return Simple(raw)
    if isinstance(raw, dict):
        if "literal" in raw:
            return Literal(str(raw["literal"]))
        if "all_of" in raw:
            group = raw["all_of"]
            if not isinstance(group, list) or not group or not all(isinstance(s, str) for s in group):
                raise ValueError(f"all_of must be a non-empty list of selectors: {raw}")
            return AllOf(tuple(group))
        if "selector" in raw:
            if raw.get("attribute"):
                return WithAttribute(raw["selector"], raw["attribute"])
            return Simple(raw["selector"], raw.get("pattern"))
    raise ValueError(f"Unrecognized selector alternative: {raw!r}")


@dataclass
class TransformContext:
    """What a transform may need beyond the node itself."""
    base_url: Optional[str] = None
    selector: str = ""


class Transform(ABC):
    """A mutation applied in place to every node a selector matches."""

    @abstractmethod
    def apply(self, node: Tag, context: TransformContext) -> None:
        pass

    @abstractmethod
    def describe(self) -> str:
        pass


@dataclass(frozen=True)
class RenameTag(Transform):
    tag: str

    def apply(self, node: Tag, context: TransformContext) -> None:
        node.name = self.tag

    def describe(self) -> str:
        return f"rename:{self.tag}"


@dataclass(frozen=True)
class Custom(Transform):
    """
    Arbitrary node mutation.

    The mutator edits the node in place. Returning a tag name renames the
    node to it; returning None leaves the name alone.
    """
    mutator: Callable[[Tag, TransformContext], Optional[str]]
    name: str = "custom"

    def apply(self, node: Tag, context: TransformContext) -> None:
        new_name = self.mutator(node, context)
        if isinstance(new_name, str) and new_name:
            node.name = new_name

    def describe(self) -> str:
        return f"custom:{self.name}"


def parse_transform(raw: Any) -> Transform:
    if isinstance(raw, Transform):
        return raw
    if isinstance(raw, str) and raw:
        return RenameTag(raw)
    if isinstance(raw, dict) and isinstance(raw.get("rename"), str):
        return RenameTag(raw["rename"])
    raise ValueError(
        f"Unrecognized transform {raw!r}; rule files only support {{rename: tag}}"
    )


@dataclass
class FieldSpec:
    """Ordered selector alternatives for one output field."""
    alternatives: List[SelectorAlternative] = field(default_factory=list)
    allow_multiple: bool = False
    min_length: int = 1
    max_length: Optional[int] = None
    # Values matching this are rejected
    reject_pattern: Optional[str] = None

    def accepts(self, value: str) -> bool:
        """Length and content check applied to each candidate value."""
        if len(value) < self.min_length:
            return False
        if self.max_length is not None and len(value) > self.max_length:
            return False
        if self.reject_pattern and re.search(self.reject_pattern, value):
            return False
        return True

    def selectors(self) -> List[str]:
        found = []
        for alternative in self.alternatives:
            found.extend(alternative.selectors())
        return found

    @classmethod
    def from_value(cls, data: Any) -> 'FieldSpec':
        """Build from a bare list of alternatives or a mapping with options."""
        if isinstance(data, list):
            return cls(alternatives=[parse_alternative(a) for a in data])
        if isinstance(data, dict):
            return cls(
                alternatives=[parse_alternative(a) for a in data.get("selectors", [])],
                **cls._options_from_dict(data),
            )
        raise ValueError(f"Field spec must be a list or mapping, got {type(data).__name__}")

    @staticmethod
    def _options_from_dict(data: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "allow_multiple": bool(data.get("allow_multiple", False)),
            "min_length": int(data.get("min_length", 1)),
            "max_length": data.get("max_length"),
            "reject_pattern": data.get("reject_pattern"),
        }

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"selectors": [a.to_dict() for a in self.alternatives]}
        if self.allow_multiple:
            data["allow_multiple"] = True
        if self.min_length != 1:
            data["min_length"] = self.min_length
        if self.max_length is not None:
            data["max_length"] = self.max_length
        if self.reject_pattern:
            data["reject_pattern"] = self.reject_pattern
        return data

    def validate(self, field_name: str, result: ValidationResult) -> None:
        if not self.alternatives:
            result.add_warning(f"{field_name}: no selector alternatives")
        for selector in self.selectors():
            if not is_valid_selector(selector):
                result.add_warning(f"{field_name}: malformed selector '{selector}' will be skipped")
        for alternative in self.alternatives:
            if isinstance(alternative, Simple) and alternative.pattern:
                self._check_pattern(field_name, alternative.pattern, result)
        if self.reject_pattern:
            self._check_pattern(field_name, self.reject_pattern, result)
        if self.max_length is not None and self.max_length < self.min_length:
            result.add_error(f"{field_name}: max_length is smaller than min_length")

    @staticmethod
    def _check_pattern(field_name: str, pattern: str, result: ValidationResult) -> None:
        try:
            re.compile(pattern)
        except re.error as e:
            result.add_error(f"{field_name}: invalid pattern '{pattern}': {e}")


@dataclass
class ContentFieldSpec(FieldSpec):
    """Field spec for the article body, with its cleanup instructions."""
    clean: List[str] = field(default_factory=list)
    # Applied in insertion order
    transforms: Dict[str, Transform] = field(default_factory=dict)
    default_cleaner: bool = True

    @classmethod
    def from_value(cls, data: Any) -> 'ContentFieldSpec':
        if isinstance(data, list):
            return cls(alternatives=[parse_alternative(a) for a in data])
        if not isinstance(data, dict):
            raise ValueError(f"Content spec must be a list or mapping, got {type(data).__name__}")

        transforms = {
            selector: parse_transform(raw)
            for selector, raw in (data.get("transforms") or {}).items()
        }
        return cls(
            alternatives=[parse_alternative(a) for a in data.get("selectors", [])],
            clean=list(data.get("clean") or []),
            transforms=transforms,
            default_cleaner=bool(data.get("default_cleaner", True)),
            **cls._options_from_dict(data),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.clean:
            data["clean"] = list(self.clean)
        rename_only = {
            selector: {"rename": t.tag}
            for selector, t in self.transforms.items()
            if isinstance(t, RenameTag)
        }
        if rename_only:
            data["transforms"] = rename_only
        if not self.default_cleaner:
            data["default_cleaner"] = False
        return data

    def validate(self, field_name: str, result: ValidationResult) -> None:
        super().validate(field_name, result)
        for selector in list(self.clean) + list(self.transforms):
            if not is_valid_selector(selector):
                result.add_warning(f"{field_name}: malformed selector '{selector}' will be skipped")


@dataclass(eq=False)
class RuleSet:
    """Extraction rules for one domain and its aliases."""
    domain: str
    title: Optional[FieldSpec] = None
    author: Optional[FieldSpec] = None
    date_published: Optional[FieldSpec] = None
    lead_image_url: Optional[FieldSpec] = None
    dek: Optional[FieldSpec] = None
    next_page_url: Optional[FieldSpec] = None
    excerpt: Optional[FieldSpec] = None
    url: Optional[FieldSpec] = None
    content: Optional[ContentFieldSpec] = None
    supported_domains: List[str] = field(default_factory=list)
    extend: Dict[str, FieldSpec] = field(default_factory=dict)
    # Probe selectors that route a page to this rule set regardless of host
    detect: List[str] = field(default_factory=list)
    is_generic: bool = False

    def field_spec(self, name: str) -> Optional[FieldSpec]:
        if name == "content":
            return self.content
        if name in SELECTABLE_FIELDS:
            return getattr(self, name)
        return self.extend.get(name)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], source: Optional[str] = None) -> 'RuleSet':
        """Create a RuleSet from its rule-file mapping."""
        if not isinstance(data, dict):
            raise RuleSetValidationError(["rule set must be a mapping"], source)
        domain = data.get("domain")
        if not domain or not isinstance(domain, str):
            raise RuleSetValidationError(["missing required 'domain'"], source)

        try:
            specs = {
                name: FieldSpec.from_value(data[name])
                for name in SELECTABLE_FIELDS
                if data.get(name) is not None
            }
            content = (
                ContentFieldSpec.from_value(data["content"])
                if data.get("content") is not None
                else None
            )
            extend = {
                name: FieldSpec.from_value(raw)
                for name, raw in (data.get("extend") or {}).items()
            }
        except (ValueError, TypeError) as e:
            raise RuleSetValidationError([str(e)], source or domain) from e

        rule_set = cls(
            domain=domain,
            content=content,
            supported_domains=list(data.get("supported_domains") or []),
            extend=extend,
            detect=list(data.get("detect") or []),
            **specs,
        )

        validation = rule_set.validate()
        for warning in validation.warnings:
            logger.warning(f"Rule set {domain}: {warning}")
        if not validation.is_valid:
            raise RuleSetValidationError(validation.errors, source or domain)
        return rule_set

    @classmethod
    def from_json(cls, json_str: str, source: Optional[str] = None) -> 'RuleSet':
        return cls.from_dict(json.loads(json_str), source)

    @classmethod
    def from_yaml(cls, yaml_str: str, source: Optional[str] = None) -> 'RuleSet':
        return cls.from_dict(yaml.safe_load(yaml_str), source)

    @classmethod
    def from_file(cls, file_path: Union[str, Path]) -> 'RuleSet':
        """Load a RuleSet from a .json, .yaml or .yml file."""
        path = Path(file_path)
        text = path.read_text(encoding="utf-8")
        if path.suffix.lower() == ".json":
            return cls.from_json(text, str(path))
        if path.suffix.lower() in (".yaml", ".yml"):
            return cls.from_yaml(text, str(path))
        raise RuleSetValidationError([f"unsupported file type '{path.suffix}'"], str(path))

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the rule-file form. Custom transforms are not serializable."""
        data: Dict[str, Any] = {"domain": self.domain}
        for name in SELECTABLE_FIELDS:
            spec = getattr(self, name)
            if spec is not None:
                data[name] = spec.to_dict()
        if self.content is not None:
            data["content"] = self.content.to_dict()
        if self.supported_domains:
            data["supported_domains"] = list(self.supported_domains)
        if self.extend:
            data["extend"] = {name: spec.to_dict() for name, spec in self.extend.items()}
        if self.detect:
            data["detect"] = list(self.detect)
        return data

    def validate(self) -> ValidationResult:
        """
        Check the rule set for structural problems.

        Malformed selectors are warnings since extraction skips them;
        inconsistent lengths, bad patterns and alias loops are errors.
        """
        result = ValidationResult()
        if not self.domain:
            result.add_error("domain must not be empty")
        if self.domain in self.supported_domains:
            result.add_error(f"domain '{self.domain}' is listed as its own alias")
        if len(set(self.supported_domains)) != len(self.supported_domains):
            result.add_error("supported_domains contains duplicates")

        for name in SELECTABLE_FIELDS:
            spec = getattr(self, name)
            if spec is not None:
                spec.validate(name, result)
        if self.content is not None:
            self.content.validate("content", result)
        for name, spec in self.extend.items():
            if name in SELECTABLE_FIELDS or name == "content":
                result.add_error(f"extended field '{name}' shadows a core field")
            spec.validate(f"extend.{name}", result)
        for selector in self.detect:
            if not is_valid_selector(selector):
                result.add_warning(f"detector '{selector}' is malformed and will be skipped")
        return result
