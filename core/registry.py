"""Rule registry -- maps every frequency kind to the rule that handles it.

At startup the default rules are instantiated from config and registered
here. The evaluator and the status engine query the registry by frequency.
A registry missing a kind is a programmer error and is rejected when the
registry is sealed, never discovered mid-pass.
"""

from __future__ import annotations

import logging

from core.models.frequencies import FREQUENCY_KINDS, Frequency
from core.protocols import FrequencyRule

logger = logging.getLogger(__name__)


class RuleRegistry:
    """Central registry for FrequencyRule implementations.

    Usage:
        registry = RuleRegistry()
        registry.register(EveryDayRule())
        ...
        registry.seal()                       # raises if a kind has no rule
        rule = registry.for_frequency(EveryDay())
    """

    def __init__(self) -> None:
        self._rules: dict[str, FrequencyRule] = {}
        self._sealed = False

    def register(self, rule: FrequencyRule) -> None:
        """Register a rule under its `name` (a frequency kind)."""
        if self._sealed:
            raise RuntimeError("Cannot register rules on a sealed registry")

        name = rule.name
        if name not in FREQUENCY_KINDS:
            raise ValueError(
                f"Unknown frequency kind '{name}'. "
                f"Must be one of: {list(FREQUENCY_KINDS)}"
            )
        if name in self._rules:
            logger.warning("Overwriting existing frequency rule '%s'", name)

        self._rules[name] = rule
        logger.debug("Registered frequency rule: %s", name)

    def seal(self) -> RuleRegistry:
        """Freeze the registry after checking every kind is covered."""
        missing = [kind for kind in FREQUENCY_KINDS if kind not in self._rules]
        if missing:
            raise RuntimeError(f"No frequency rule registered for: {missing}")
        self._sealed = True
        return self

    def get(self, kind: str) -> FrequencyRule:
        """Get the rule for a frequency kind. Raises KeyError if absent."""
        if kind not in self._rules:
            raise KeyError(
                f"No frequency rule named '{kind}'. "
                f"Available: {list(self._rules)}"
            )
        return self._rules[kind]

    def for_frequency(self, frequency: Frequency) -> FrequencyRule:
        return self.get(frequency.kind)

    def has(self, kind: str) -> bool:
        return kind in self._rules

    def names(self) -> list[str]:
        return list(self._rules)

    @property
    def sealed(self) -> bool:
        return self._sealed
