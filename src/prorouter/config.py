"""Routing configuration.

Every tuning constant the routing pipeline depends on lives here, so
the scoring, admission and dispatch code never carries magic numbers.
Defaults reproduce the production values; an operator can override
any of them from ~/.prorouter/config.yaml (or $PROROUTER_CONFIG).

Settings are loaded once at startup and treated as read-only after that.
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".prorouter" / "config.yaml"
CONFIG_ENV_VAR = "PROROUTER_CONFIG"


class ConfigError(ValueError):
    """Raised when routing configuration is invalid."""


class ClassifierTuning(BaseModel):
    """Constants for keyword scoring and intent resolution."""

    # Everyday signal dampens expert harder than professional
    expert_damping: float = 0.5
    professional_damping: float = 0.3

    # Length heuristic (only applied when expert score is exactly zero)
    short_message_chars: int = 50
    short_message_penalty: int = 3
    medium_message_chars: int = 100
    medium_message_penalty: int = 1

    # Confidence shaping
    smoothing: int = 5
    min_signal: float = 3.0
    insufficient_signal_confidence: int = 60
    everyday_confidence_floor: int = 50

    # Expert bias rule
    bias_min_expert: float = 6.0
    bias_ratio: float = 1.3
    bias_confidence_floor: int = 70

    # Session hysteresis
    hysteresis_override_below: int = 80
    hysteresis_confidence_floor: int = 60
    lock_threshold: int = 70


class KeywordLimits(BaseModel):
    """Soft size limits per weight class, checked by validate_table."""
    max_high: int = 80
    max_medium: int = 100
    max_low: int = 150


class BudgetPolicy(BaseModel):
    """Premium provider cap and admission settings."""

    # Monthly premium token caps by region code
    caps: dict[str, int] = Field(
        default_factory=lambda: {"IN": 220_000, "INTL": 650_000}
    )
    safe_threshold: int = 20_000
    preflight_buffer: int = 5_000
    near_cap_threshold: int = 50_000

    # Token estimation
    chars_per_token: int = 4
    input_overhead: int = 200
    response_budget: dict[str, int] = Field(
        default_factory=lambda: {
            "expert": 900,
            "professional": 500,
            "everyday": 250,
        }
    )

    # Rare PROFESSIONAL -> premium escalation
    soft_escalation_min_remaining: int = 120_000
    soft_escalation_min_score: float = 8.0


class ProviderConfig(BaseModel):
    """A backend model provider entry."""
    provider_id: str
    display_name: str
    cost_per_1m: float = 100.0
    is_premium: bool = False


class DispatchPolicy(BaseModel):
    """Provider catalog and hash-split thresholds."""

    providers: list[ProviderConfig] = Field(
        default_factory=lambda: [
            ProviderConfig(provider_id="gpt-5.1", display_name="GPT-5.1",
                           cost_per_1m=850, is_premium=True),
            ProviderConfig(provider_id="gemini-2.5-pro",
                           display_name="Gemini Pro", cost_per_1m=180),
            ProviderConfig(provider_id="gemini-2.5-flash",
                           display_name="Gemini Flash", cost_per_1m=210),
            ProviderConfig(provider_id="mistral-large-3",
                           display_name="Mistral Large 3", cost_per_1m=125),
        ]
    )
    premium: str = "gpt-5.1"

    # EVERYDAY: fast provider below the threshold, cheap provider above
    everyday_fast: str = "gemini-2.5-flash"
    everyday_cheap: str = "mistral-large-3"
    everyday_fast_share: int = 60

    # PROFESSIONAL: cheaper mid-tier below the threshold
    professional_cheaper: str = "mistral-large-3"
    professional_other: str = "gemini-2.5-pro"
    professional_balanced_share: int = 50
    professional_pressure_share: int = 70
    mid_tier_threshold: int = 80_000

    # EXPERT fallback when premium is denied
    expert_fallback: str = "gemini-2.5-pro"


class RouterSettings(BaseModel):
    """Top-level routing settings."""
    version: str = "1"
    classifier: ClassifierTuning = Field(default_factory=ClassifierTuning)
    keyword_limits: KeywordLimits = Field(default_factory=KeywordLimits)
    budget: BudgetPolicy = Field(default_factory=BudgetPolicy)
    dispatch: DispatchPolicy = Field(default_factory=DispatchPolicy)


def _resolve_path(path: Path | None) -> Path:
    if path is not None:
        return path
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_PATH


def load_settings(path: Path | None = None) -> RouterSettings:
    """Load routing settings from YAML.

    A missing file yields the defaults. A present but unreadable or
    invalid file raises ConfigError; there is no partial fallback.
    """
    config_path = _resolve_path(path)
    if not config_path.exists():
        logger.debug(f"No routing config at {config_path}, using defaults")
        return RouterSettings()

    try:
        with open(config_path) as f:
            data: Any = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{config_path} must contain a mapping")

    try:
        settings = RouterSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid routing config {config_path}: {e}") from e

    validate_settings(settings)
    logger.info(f"Loaded routing config v{settings.version} from {config_path}")
    return settings


def validate_settings(settings: RouterSettings) -> None:
    """Check cross-field consistency of settings.

    Raises:
        ConfigError: If a referenced provider is missing or a share is
            out of range.
    """
    dispatch = settings.dispatch
    known = {p.provider_id for p in dispatch.providers}
    referenced = {
        "premium": dispatch.premium,
        "everyday_fast": dispatch.everyday_fast,
        "everyday_cheap": dispatch.everyday_cheap,
        "professional_cheaper": dispatch.professional_cheaper,
        "professional_other": dispatch.professional_other,
        "expert_fallback": dispatch.expert_fallback,
    }
    for field_name, provider_id in referenced.items():
        if provider_id not in known:
            raise ConfigError(
                f"dispatch.{field_name} references unknown provider '{provider_id}'")

    if dispatch.expert_fallback == dispatch.premium:
        raise ConfigError("dispatch.expert_fallback must not be the premium provider")

    for field_name in (
        "everyday_fast_share",
        "professional_balanced_share",
        "professional_pressure_share",
    ):
        share = getattr(dispatch, field_name)
        if not 0 <= share <= 100:
            raise ConfigError(f"dispatch.{field_name} must be within 0..100")

    budget = settings.budget
    if not budget.caps:
        raise ConfigError("budget.caps must define at least one region")
    if any(cap < 0 for cap in budget.caps.values()):
        raise ConfigError("budget.caps must be non-negative")
    if budget.chars_per_token <= 0:
        raise ConfigError("budget.chars_per_token must be positive")
    missing = {"expert", "professional", "everyday"} - set(budget.response_budget)
    if missing:
        raise ConfigError(
            f"budget.response_budget is missing intents: {sorted(missing)}")
