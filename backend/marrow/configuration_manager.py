"""
Configuration management for the extraction core.
Holds the tunable scoring constants and resolver limits and validates them.
"""
from dataclasses import dataclass, field, fields, asdict
from typing import Any, Dict, List, Optional

from marrow.configs.app_configs import (
    HTML_PARSER,
    MIN_CONTENT_LENGTH,
    MIN_SEED_TEXT_LENGTH,
    RESOLVER_MAX_WORKERS,
    RESOLVER_TIMEOUT,
    RULES_DIR,
    SCORING_TIMEOUT,
    SIBLING_SCORE_RATIO,
    SWEEP_LINK_DENSITY,
    UNLIKELY_LINK_DENSITY,
)
from marrow.utils.logger import setup_logger


logger = setup_logger()

# Hard ceiling on resolver workers regardless of configuration
MAX_RESOLVER_WORKERS = 10


@dataclass
class ScoringConfig:
    """Tunable constants of the content scoring pass."""
    unlikely_link_density: float = UNLIKELY_LINK_DENSITY
    min_seed_text_length: int = MIN_SEED_TEXT_LENGTH
    max_length_bonus: int = 3
    length_bonus_divisor: int = 100
    parent_weight: float = 1.0
    grandparent_weight: float = 0.5
    sibling_score_ratio: float = SIBLING_SCORE_RATIO
    sibling_paragraph_min_length: int = 80
    sibling_paragraph_max_link_density: float = 0.25
    sweep_link_density: float = SWEEP_LINK_DENSITY
    caption_max_length: int = 120
    caption_max_link_density: float = 0.5
    min_content_length: int = MIN_CONTENT_LENGTH
    timeout: float = SCORING_TIMEOUT


@dataclass
class ResolverConfig:
    """Limits for the concurrent resolver fan-out."""
    timeout: float = RESOLVER_TIMEOUT
    max_workers: int = RESOLVER_MAX_WORKERS


@dataclass
class ExtractorConfig:
    """Top level configuration for an ExtractorFactory."""
    html_parser: str = HTML_PARSER
    rules_dir: Optional[str] = RULES_DIR
    load_bundled_rules: bool = True
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    resolver: ResolverConfig = field(default_factory=ResolverConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ExtractorConfig':
        """Build a config, ignoring unknown keys in nested sections."""
        scoring_keys = {f.name for f in fields(ScoringConfig)}
        resolver_keys = {f.name for f in fields(ResolverConfig)}

        scoring_data = {k: v for k, v in (data.get("scoring") or {}).items() if k in scoring_keys}
        resolver_data = {k: v for k, v in (data.get("resolver") or {}).items() if k in resolver_keys}

        return cls(
            html_parser=data.get("html_parser", HTML_PARSER),
            rules_dir=data.get("rules_dir", RULES_DIR),
            load_bundled_rules=data.get("load_bundled_rules", True),
            scoring=ScoringConfig(**scoring_data),
            resolver=ResolverConfig(**resolver_data),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ConfigurationManager:
    """
    Validates an ExtractorConfig before it is used to build extractors.
    """

    def __init__(self, config: ExtractorConfig):
        self.config = config

    def validate(self) -> List[str]:
        """
        Validate configuration settings.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []
        scoring = self.config.scoring
        resolver = self.config.resolver

        for name in (
            "unlikely_link_density",
            "sibling_paragraph_max_link_density",
            "sweep_link_density",
            "caption_max_link_density",
        ):
            value = getattr(scoring, name)
            if not 0.0 <= value <= 1.0:
                errors.append(f"scoring.{name} must be between 0 and 1, got {value}")

        if not 0.0 < scoring.sibling_score_ratio <= 1.0:
            errors.append(
                f"scoring.sibling_score_ratio must be in (0, 1], got {scoring.sibling_score_ratio}"
            )

        if scoring.length_bonus_divisor <= 0:
            errors.append("scoring.length_bonus_divisor must be positive")

        for name in (
            "min_seed_text_length",
            "max_length_bonus",
            "sibling_paragraph_min_length",
            "caption_max_length",
            "min_content_length",
        ):
            if getattr(scoring, name) < 0:
                errors.append(f"scoring.{name} must not be negative")

        if scoring.parent_weight < 0 or scoring.grandparent_weight < 0:
            errors.append("scoring propagation weights must not be negative")

        if scoring.timeout < 0:
            errors.append("scoring.timeout must not be negative")

        if resolver.timeout <= 0:
            errors.append("resolver.timeout must be positive")

        if resolver.max_workers < 1:
            errors.append("resolver.max_workers must be at least 1")
        elif resolver.max_workers > MAX_RESOLVER_WORKERS:
            logger.warning(
                f"resolver.max_workers={resolver.max_workers} exceeds the cap, "
                f"using {MAX_RESOLVER_WORKERS}"
            )

        if not self.config.html_parser:
            errors.append("html_parser must be set")

        return errors

    def validate_or_raise(self) -> None:
        """Validate configuration and raise on the first problem."""
        errors = self.validate()
        if errors:
            raise ValueError(f"Invalid extractor configuration: {'; '.join(errors)}")

    @property
    def resolver_workers(self) -> int:
        return max(1, min(self.config.resolver.max_workers, MAX_RESOLVER_WORKERS))
