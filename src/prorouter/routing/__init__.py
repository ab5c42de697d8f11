"""Pro-tier routing engine.

Classify -> admit -> dispatch, all local and deterministic:
- Keyword-weighted intent scoring with session hysteresis
- Regional monthly cap on the premium provider with pre-flight estimates
- Stable-hash load splitting between equivalent providers
- Intent-specific delta prompts

The same message with the same inputs always routes the same way.
"""

from prorouter.routing.budget import (
    Admission,
    BudgetGuard,
    BudgetState,
    EstimationResult,
    FallbackReason,
    Region,
)
from prorouter.routing.delta import DeltaPromptSelector
from prorouter.routing.dispatch import (
    DispatchDecision,
    DispatchSelector,
    ProviderSpec,
    routing_hash,
    stable_hash,
)
from prorouter.routing.keywords import (
    Intent,
    KeywordRegistry,
    KeywordTable,
    KeywordTableError,
    WeightClass,
    WeightedKeyword,
    default_table,
    validate_table,
)
from prorouter.routing.nudge import NudgeType, detect_nudge
from prorouter.routing.router import ProRouter, RoutingMetadata, RoutingResult
from prorouter.routing.scorer import ClassificationResult, IntentClassifier

__all__ = [
    "Admission",
    "BudgetGuard",
    "BudgetState",
    "ClassificationResult",
    "DeltaPromptSelector",
    "DispatchDecision",
    "DispatchSelector",
    "EstimationResult",
    "FallbackReason",
    "Intent",
    "IntentClassifier",
    "KeywordRegistry",
    "KeywordTable",
    "KeywordTableError",
    "NudgeType",
    "ProRouter",
    "ProviderSpec",
    "Region",
    "RoutingMetadata",
    "RoutingResult",
    "WeightClass",
    "WeightedKeyword",
    "default_table",
    "detect_nudge",
    "routing_hash",
    "stable_hash",
    "validate_table",
]
