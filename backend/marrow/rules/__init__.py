"""
Bundled site rule sets: rule files under sites/ plus the Python-defined
rule sets in custom.
"""

from pathlib import Path
from typing import Optional, Union

from marrow.exceptions import DuplicateRuleSetError
from marrow.rules.custom import custom_rule_sets
from marrow.selectors.registry import Registry
from marrow.selectors.rule_loader import RuleLoader
from marrow.utils.logger import setup_logger

logger = setup_logger()

SITES_DIR = Path(__file__).resolve().parent / "sites"


def load_bundled_rules(
    registry: Registry,
    rules_dir: Optional[Union[str, Path]] = None,
) -> int:
    """
    Register the bundled rule sets with registry.

    Rule files load first, in file name order, then the Python-defined
    rule sets. Domains already present in registry are kept.

    Returns:
        Number of rule sets registered
    """
    loader = RuleLoader(rules_dir or SITES_DIR)
    registered = loader.load_into(registry)

    for rule_set in custom_rule_sets():
        try:
            registry.register(rule_set)
            registered += 1
        except DuplicateRuleSetError:
            logger.debug(f"Keeping existing rule set for {rule_set.domain}")

    logger.info(f"Registered {registered} bundled rule sets")
    return registered
