"""Ordered commit-message rules for the time estimator.

Rules are checked in order against the concatenated, lowercased messages of a
session; the first match decides the multiplier.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from ..config import ComplexityMultipliers

QUICK_FIX_MULTIPLIER = 0.5
NEUTRAL_MULTIPLIER = 1.0


@dataclass(frozen=True)
class MessageRule:
    """Keyword predicate plus the multiplier applied when it matches.

    ``multiplier_key`` names a ComplexityMultipliers field; without one the
    fixed multiplier is used.
    """

    name: str
    keywords: tuple[str, ...]
    multiplier_key: Optional[str] = None
    fixed_multiplier: float = NEUTRAL_MULTIPLIER

    def matches(self, text: str) -> bool:
        return any(keyword in text for keyword in self.keywords)

    def multiplier(self, multipliers: ComplexityMultipliers) -> float:
        if self.multiplier_key is None:
            return self.fixed_multiplier
        return multipliers.get(self.multiplier_key)


MESSAGE_RULES: tuple[MessageRule, ...] = (
    MessageRule("quick_fix", ("quick fix", "typo", "minor"), fixed_multiplier=QUICK_FIX_MULTIPLIER),
    MessageRule("refactor", ("refactor", "restructure", "cleanup"), multiplier_key="refactor"),
    MessageRule("feature", ("feature", "implement", "add"), multiplier_key="feature"),
    MessageRule("bugfix", ("fix", "bug"), multiplier_key="bugfix"),
)


def match_rule(text: str, rules: Sequence[MessageRule] = MESSAGE_RULES) -> Optional[MessageRule]:
    """First rule whose keywords occur in ``text``."""
    for rule in rules:
        if rule.matches(text):
            return rule
    return None
