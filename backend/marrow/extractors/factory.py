"""
Factory wiring a registry, resolver and orchestrator into one extractor.
"""

from typing import Any, Dict, List, Optional, Union

from bs4 import BeautifulSoup
from bs4.element import Tag

from marrow.configuration_manager import ConfigurationManager, ExtractorConfig, ResolverConfig
from marrow.content_processor import TransformCleanPipeline
from marrow.extractors.orchestrator import FieldExtractionOrchestrator
from marrow.metrics_collector import MetricsCollector
from marrow.rules import load_bundled_rules
from marrow.scoring.scorer import ScoringEngine
from marrow.selectors.config import RuleSet
from marrow.selectors.engine import SelectorEngine
from marrow.selectors.generic_extractor import build_generic_rule_set
from marrow.selectors.registry import Registry
from marrow.selectors.resolver import ExtractorResolver, RuleSetRef, hostname_from_url
from marrow.selectors.rule_loader import RuleLoader
from marrow.types import ExtractionOptions, Result
from marrow.utils.logger import setup_logger

logger = setup_logger()

OptionsArg = Union[ExtractionOptions, Dict[str, Any], None]


class ExtractorFactory:
    """
    Builds extraction components from one configuration.

    Every factory owns its registry; nothing is shared between factories.
    """

    def __init__(
        self,
        config: Optional[ExtractorConfig] = None,
        registry: Optional[Registry] = None,
    ):
        """
        Initialize the factory.

        Args:
            config: Extractor configuration; environment defaults if omitted
            registry: Rule sets to resolve against; empty if omitted

        Raises:
            ValueError: config is invalid
        """
        self.config = config or ExtractorConfig()
        self.config_manager = ConfigurationManager(self.config)
        self.config_manager.validate_or_raise()

        self.registry = registry if registry is not None else Registry()
        self.metrics = MetricsCollector()
        self.generic_rule_set = build_generic_rule_set()

        self.resolver = ExtractorResolver(
            self.registry,
            generic_rule_set=self.generic_rule_set,
            config=ResolverConfig(
                timeout=self.config.resolver.timeout,
                max_workers=self.config_manager.resolver_workers,
            ),
            metrics=self.metrics,
        )
        self.orchestrator = FieldExtractionOrchestrator(
            selector_engine=SelectorEngine(self.metrics),
            pipeline=TransformCleanPipeline(self.metrics),
            scoring_engine=ScoringEngine(self.config.scoring, self.config.html_parser),
            generic_rule_set=self.generic_rule_set,
            metrics=self.metrics,
        )

    @classmethod
    def create_default(cls, config: Optional[ExtractorConfig] = None) -> 'ExtractorFactory':
        """
        Create a factory with the bundled rule sets registered.

        Rule files in config.rules_dir load after the bundled ones and
        replace bundled rule sets for the same domain.
        """
        factory = cls(config)
        if factory.config.load_bundled_rules:
            load_bundled_rules(factory.registry)
        if factory.config.rules_dir:
            loader = RuleLoader(factory.config.rules_dir)
            count = loader.load_into(factory.registry, replace=True)
            logger.info(f"Loaded {count} rule sets from {factory.config.rules_dir}")
        return factory

    def register_rule_set(self, rule_set: RuleSet, replace: bool = False) -> None:
        self.registry.register(rule_set, replace=replace)
        logger.info(f"Registered rule set: {rule_set.domain}")

    def list_domains(self) -> List[str]:
        return self.registry.domains()

    def resolve(self, hostname: str, doc: Optional[Tag] = None) -> RuleSetRef:
        return self.resolver.resolve(hostname, doc)

    async def resolve_concurrent(
        self,
        hostname: str,
        doc: Optional[Tag] = None,
        timeout: Optional[float] = None,
    ) -> RuleSetRef:
        return await self.resolver.resolve_concurrent(hostname, doc, timeout=timeout)

    def extract(
        self,
        doc: Tag,
        url: Optional[str],
        rule_set: Union[RuleSet, RuleSetRef, None] = None,
        options: OptionsArg = None,
    ) -> Result:
        """
        Extract a Result from a parsed document.

        Args:
            doc: Parsed document; it is not modified
            url: URL of the document
            rule_set: Rule set to use; resolved from url and doc if omitted
            options: ExtractionOptions or a mapping of option values
        """
        if rule_set is None:
            rule_set = self.resolver.resolve(hostname_from_url(url or ""), doc)
        return self.orchestrator.extract(doc, url, rule_set, self._options(options))

    def parse_document(self, html: str) -> BeautifulSoup:
        return BeautifulSoup(html or "", self.config.html_parser)

    def parse(self, html: str, url: Optional[str], options: OptionsArg = None) -> Result:
        """Parse html, resolve its rule set and extract."""
        return self.extract(self.parse_document(html), url, options=options)

    @staticmethod
    def _options(options: OptionsArg) -> ExtractionOptions:
        if isinstance(options, ExtractionOptions):
            return options
        return ExtractionOptions.from_dict(options or {})
