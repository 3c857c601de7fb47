"""
Loads rule sets from YAML and JSON files on disk.
"""

from pathlib import Path
from typing import Dict, List, Optional, Union

import yaml

from marrow.exceptions import DuplicateRuleSetError, RuleSetValidationError
from marrow.selectors.config import RuleSet
from marrow.selectors.registry import Registry
from marrow.utils.logger import setup_logger

logger = setup_logger()

RULE_FILE_SUFFIXES = (".yaml", ".yml", ".json")


class RuleLoader:
    """Loads rule set files from one or more directories."""

    def __init__(self, rules_dir: Optional[Union[str, Path]] = None):
        """Initialize the rule loader.

        Args:
            rules_dir: Directory containing rule files.
                       Defaults to the bundled rules/sites directory.
        """
        if rules_dir is None:
            rules_dir = Path(__file__).resolve().parent.parent / "rules" / "sites"

        self.rules_dir = Path(rules_dir)
        self._loaded: Dict[str, RuleSet] = {}
        self._failed: Dict[str, str] = {}

    def load(self) -> List[RuleSet]:
        """
        Load every rule file in the directory.

        Files are read in name order so detector registration order is
        stable. A file that fails to parse or validate is logged and skipped.

        Returns:
            Loaded rule sets in file name order
        """
        self._loaded = {}
        self._failed = {}
        if not self.rules_dir.exists():
            logger.warning(f"Rules directory not found: {self.rules_dir}")
            return []

        rule_files = sorted(
            path for path in self.rules_dir.iterdir()
            if path.is_file() and path.suffix.lower() in RULE_FILE_SUFFIXES
        )
        logger.info(f"Found {len(rule_files)} rule files in {self.rules_dir}")

        loaded = []
        for file_path in rule_files:
            rule_set = self._load_rule_file(file_path)
            if rule_set is not None:
                loaded.append(rule_set)
        return loaded

    def _load_rule_file(self, file_path: Path) -> Optional[RuleSet]:
        """Load a single rule file.

        Args:
            file_path: Path to the YAML or JSON rule file
        """
        try:
            rule_set = RuleSet.from_file(file_path)
        except RuleSetValidationError as e:
            logger.error(f"Invalid rule file {file_path.name}: {e}")
            self._failed[file_path.name] = str(e)
            return None
        except (yaml.YAMLError, ValueError, OSError) as e:
            logger.error(f"Error loading rule file {file_path}: {e}")
            self._failed[file_path.name] = str(e)
            return None

        if rule_set.domain in self._loaded:
            logger.warning(
                f"Rule file {file_path.name} redefines {rule_set.domain}; keeping the first"
            )
            return None

        self._loaded[rule_set.domain] = rule_set
        logger.debug(f"Loaded rule set: {rule_set.domain} from {file_path.name}")
        return rule_set

    def load_into(self, registry: Registry, replace: bool = False) -> int:
        """
        Register every loadable rule set with registry.

        Returns:
            Number of rule sets registered
        """
        registered = 0
        for rule_set in self.load():
            try:
                registry.register(rule_set, replace=replace)
                registered += 1
            except DuplicateRuleSetError as e:
                logger.warning(f"Skipping {rule_set.domain} from {self.rules_dir}: {e}")
        return registered

    @property
    def failed_files(self) -> Dict[str, str]:
        """File names that failed to load, with the reason."""
        return dict(self._failed)
