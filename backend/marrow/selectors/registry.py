"""
Registry of rule sets keyed by domain, plus ordered content detectors.
"""
from typing import Dict, Iterable, List, Optional, Protocol, Tuple

from marrow.exceptions import DuplicateRuleSetError
from marrow.selectors.config import RuleSet
from marrow.utils.dom import is_valid_selector
from marrow.utils.logger import setup_logger

logger = setup_logger()


class RuleSetSource(Protocol):
    """What the resolver needs from a registry."""

    def lookup(self, hostname: str) -> Tuple[Optional[RuleSet], bool]:
        ...

    def detectors(self) -> List[Tuple[str, RuleSet]]:
        ...


class Registry:
    """
    Explicitly constructed collection of rule sets.

    A rule set is stored once under its domain; each supported domain is
    an alias pointing at that same object. Detectors keep registration order.
    """

    def __init__(self, rule_sets: Optional[Iterable[RuleSet]] = None):
        self._rule_sets: Dict[str, RuleSet] = {}
        self._aliases: Dict[str, RuleSet] = {}
        self._detectors: List[Tuple[str, RuleSet]] = []
        for rule_set in rule_sets or []:
            self.register(rule_set)

    def register(self, rule_set: RuleSet, replace: bool = False) -> None:
        """
        Add a rule set, its aliases and its declared detectors.

        Args:
            rule_set: Rule set to add
            replace: Allow overriding an existing rule set for the same domain

        Raises:
            DuplicateRuleSetError: domain already registered and replace is False
        """
        domain = self._normalize(rule_set.domain)
        existing = self._rule_sets.get(domain)
        if existing is not None:
            if not replace:
                raise DuplicateRuleSetError(rule_set.domain)
            self._forget(existing)
            logger.info(f"Replacing rule set for {domain}")

        self._rule_sets[domain] = rule_set
        for alias in rule_set.supported_domains:
            alias = self._normalize(alias)
            if alias in self._rule_sets:
                logger.warning(f"Alias {alias} of {domain} shadows a primary domain; ignored")
                continue
            previous = self._aliases.get(alias)
            if previous is not None and previous is not rule_set:
                logger.warning(f"Alias {alias} moved from {previous.domain} to {domain}")
            self._aliases[alias] = rule_set

        for selector in rule_set.detect:
            self.add_detector(selector, rule_set)

    def add_detector(self, selector: str, rule_set: RuleSet) -> None:
        """Route documents matching selector to rule_set; earlier detectors win."""
        if not is_valid_selector(selector):
            logger.warning(f"Detector '{selector}' for {rule_set.domain} is malformed and will be skipped")
        self._detectors.append((selector, rule_set))

    def lookup(self, hostname: str) -> Tuple[Optional[RuleSet], bool]:
        key = self._normalize(hostname)
        rule_set = self._rule_sets.get(key) or self._aliases.get(key)
        return rule_set, rule_set is not None

    def get(self, hostname: str) -> Optional[RuleSet]:
        return self.lookup(hostname)[0]

    def detectors(self) -> List[Tuple[str, RuleSet]]:
        return list(self._detectors)

    def domains(self) -> List[str]:
        return sorted(self._rule_sets)

    def __len__(self) -> int:
        return len(self._rule_sets)

    def __contains__(self, hostname: str) -> bool:
        return self.lookup(hostname)[1]

    def _forget(self, rule_set: RuleSet) -> None:
        self._aliases = {k: v for k, v in self._aliases.items() if v is not rule_set}
        self._detectors = [(s, r) for s, r in self._detectors if r is not rule_set]

    @staticmethod
    def _normalize(hostname: str) -> str:
        return (hostname or "").strip().lower().rstrip(".")
