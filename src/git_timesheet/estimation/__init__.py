"""Time estimation heuristics."""

from .estimator import TimeEstimate, TimeEstimator
from .rules import MESSAGE_RULES, MessageRule, match_rule

__all__ = ["MESSAGE_RULES", "MessageRule", "TimeEstimate", "TimeEstimator", "match_rule"]
