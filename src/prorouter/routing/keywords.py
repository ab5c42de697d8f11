"""Weighted keyword tables for intent scoring.

Tables are immutable and versioned. The classifier only ever reads
a snapshot; administrative changes go through KeywordRegistry, which
builds a new table and swaps the reference (copy-on-write), so the
request path never takes a lock.

Matching rules:
- Phrases containing a space or hyphen match by substring.
- Single words match on word boundaries only ("plan" does not
  match inside "planet").
"""

import logging
import re
import threading
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Iterable

from prorouter.config import ConfigError, KeywordLimits

logger = logging.getLogger(__name__)


class Intent(str, Enum):
    """Coarse request category driving provider selection."""
    EVERYDAY = "everyday"
    PROFESSIONAL = "professional"
    EXPERT = "expert"


class WeightClass(IntEnum):
    """Keyword weight classes."""
    HIGH = 3
    MEDIUM = 2
    LOW = 1


class KeywordTableError(ConfigError):
    """Raised when a keyword table fails validation."""


@dataclass(frozen=True)
class WeightedKeyword:
    """A keyword or phrase with its scoring weight."""
    phrase: str
    weight: int
    _pattern: re.Pattern | None = field(
        default=None, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.is_phrase:
            object.__setattr__(
                self, "_pattern", re.compile(rf"\b{re.escape(self.phrase)}\b"))

    @property
    def is_phrase(self) -> bool:
        return " " in self.phrase or "-" in self.phrase

    def matches(self, text: str) -> bool:
        """Check a case-folded text for this keyword."""
        if self._pattern is None:
            return self.phrase in text
        return self._pattern.search(text) is not None


def _build(weight_class: WeightClass, phrases: Iterable[str]) -> tuple[WeightedKeyword, ...]:
    return tuple(WeightedKeyword(p, int(weight_class)) for p in phrases)


@dataclass(frozen=True)
class KeywordTable:
    """Immutable keyword tables for the three intent tiers."""
    version: str
    tiers: dict[Intent, tuple[WeightedKeyword, ...]]

    def keywords(self, intent: Intent) -> tuple[WeightedKeyword, ...]:
        return self.tiers.get(intent, ())

    def score(self, text: str, intent: Intent) -> tuple[int, list[str]]:
        """Score a case-folded text against one tier.

        Returns:
            (summed weight of matched keywords, matched phrases)
        """
        total = 0
        matched: list[str] = []
        for keyword in self.keywords(intent):
            if keyword.matches(text):
                total += keyword.weight
                matched.append(keyword.phrase)
        return total, matched

    def snapshot(self) -> "KeywordTable":
        """A table is its own snapshot (lets callers accept either a table or a registry)."""
        return self

    def with_keywords(
        self,
        intent: Intent,
        weight_class: WeightClass,
        phrases: Iterable[str],
    ) -> "KeywordTable":
        """Return a new table with phrases appended to a tier.

        Phrases are normalized; ones already present in the tier are skipped.
        """
        existing = {k.phrase for k in self.keywords(intent)}
        added = []
        for phrase in phrases:
            normalized = phrase.strip().casefold()
            if normalized and normalized not in existing:
                existing.add(normalized)
                added.append(normalized)

        tiers = dict(self.tiers)
        tiers[intent] = self.keywords(intent) + _build(weight_class, added)
        return KeywordTable(version=_next_version(self.version), tiers=tiers)

    def without_keywords(self, intent: Intent, phrases: Iterable[str]) -> "KeywordTable":
        """Return a new table with phrases removed from a tier."""
        drop = {p.strip().casefold() for p in phrases}
        tiers = dict(self.tiers)
        tiers[intent] = tuple(k for k in self.keywords(intent) if k.phrase not in drop)
        return KeywordTable(version=_next_version(self.version), tiers=tiers)

    def stats(self) -> dict[str, Any]:
        """Per-tier keyword counts by weight class."""
        result: dict[str, Any] = {"version": self.version}
        for intent in Intent:
            counts = {wc.name.lower(): 0 for wc in WeightClass}
            for keyword in self.keywords(intent):
                try:
                    counts[WeightClass(keyword.weight).name.lower()] += 1
                except ValueError:
                    counts.setdefault("other", 0)
                    counts["other"] += 1
            counts["total"] = len(self.keywords(intent))
            result[intent.value] = counts
        return result


def _next_version(version: str) -> str:
    base, sep, rev = version.partition("+r")
    if sep and rev.isdigit():
        return f"{base}+r{int(rev) + 1}"
    return f"{version}+r1"


def validate_table(table: KeywordTable, limits: KeywordLimits | None = None) -> list[str]:
    """Validate a keyword table once at startup.

    Hard problems (empty tier, bad weight, duplicate or non-normalized
    phrase) raise KeywordTableError. Soft size-limit overruns are only
    logged and returned as warnings.

    Returns:
        List of warning messages (empty when healthy).
    """
    limits = limits or KeywordLimits()
    errors: list[str] = []
    warnings: list[str] = []

    max_by_weight = {
        int(WeightClass.HIGH): limits.max_high,
        int(WeightClass.MEDIUM): limits.max_medium,
        int(WeightClass.LOW): limits.max_low,
    }

    for intent in Intent:
        keywords = table.keywords(intent)
        if not keywords:
            errors.append(f"{intent.value}: tier is empty")
            continue

        seen: set[str] = set()
        counts: dict[int, int] = {}
        for keyword in keywords:
            if keyword.weight <= 0:
                errors.append(f"{intent.value}: '{keyword.phrase}' has non-positive weight")
            if not keyword.phrase or keyword.phrase != keyword.phrase.strip().casefold():
                errors.append(f"{intent.value}: '{keyword.phrase}' is not normalized")
            if keyword.phrase in seen:
                errors.append(f"{intent.value}: duplicate '{keyword.phrase}'")
            seen.add(keyword.phrase)
            counts[keyword.weight] = counts.get(keyword.weight, 0) + 1

        for weight, count in counts.items():
            limit = max_by_weight.get(weight)
            if limit is not None and count > limit:
                warnings.append(
                    f"{intent.value} weight-{weight} keywords too large: {count}/{limit}")

    if errors:
        raise KeywordTableError(
            f"Keyword table {table.version} invalid: " + "; ".join(errors))

    for message in warnings:
        logger.warning(message)
    return warnings


class KeywordRegistry:
    """Single-writer holder of the live keyword table.

    Readers call snapshot() and get an immutable table without locking.
    Writers build a replacement table and swap the reference.
    """

    def __init__(self, table: KeywordTable | None = None, limits: KeywordLimits | None = None):
        self._table = table or default_table()
        self._limits = limits or KeywordLimits()
        self._write_lock = threading.Lock()

    def snapshot(self) -> KeywordTable:
        return self._table

    def append(self, intent: Intent, weight_class: WeightClass, phrases: Iterable[str]) -> KeywordTable:
        """Append keywords to a tier (administrative path only)."""
        phrases = list(phrases)
        with self._write_lock:
            candidate = self._table.with_keywords(intent, weight_class, phrases)
            validate_table(candidate, self._limits)
            self._table = candidate
        logger.info(
            f"Added {len(phrases)} {weight_class.name.lower()} keywords to "
            f"{intent.value} (table {candidate.version})")
        return candidate

    def remove(self, intent: Intent, phrases: Iterable[str]) -> KeywordTable:
        """Remove keywords from a tier (administrative path only)."""
        phrases = list(phrases)
        with self._write_lock:
            candidate = self._table.without_keywords(intent, phrases)
            validate_table(candidate, self._limits)
            self._table = candidate
        logger.info(
            f"Removed {len(phrases)} keywords from {intent.value} (table {candidate.version})")
        return candidate


# ─── Default tables ───────────────────────────────────────────────

EXPERT_KEYWORDS = {
    WeightClass.HIGH: [
        "root cause", "root cause analysis", "risk analysis", "cost-benefit",
        "architecture", "system design", "first principles", "trade-off",
        "tradeoff", "scalability", "financial analysis", "deep analysis",
        "impact assessment", "due diligence", "sensitivity analysis",
        "failure mode", "threat model", "feasibility study", "build vs buy",
        "game theory", "regression analysis", "monte carlo",
        "valuation model", "capacity planning",
    ],
    WeightClass.MEDIUM: [
        "multi-variable", "multi-dimensional", "complex", "deep dive",
        "optimize", "optimization", "distributed", "concurrency",
        "algorithm", "latency", "throughput", "fault tolerance",
        "statistical", "hypothesis", "quantitative", "second-order",
        "long-term impact", "edge cases", "bottleneck", "compliance",
    ],
    WeightClass.LOW: [
        "analysis", "analyze", "evaluate", "assess", "rigorous",
        "implications", "critique", "benchmark", "nuanced", "framework",
    ],
}

PROFESSIONAL_KEYWORDS = {
    WeightClass.HIGH: [
        "business plan", "roadmap", "go-to-market", "project plan",
        "pitch deck", "proposal", "marketing strategy", "sales strategy",
        "pricing strategy", "quarterly report", "stakeholder", "okr", "kpi",
        "board meeting", "investor update",
    ],
    WeightClass.MEDIUM: [
        "strategy", "marketing", "sales", "pitch", "pricing", "budget",
        "presentation", "report", "meeting", "client", "metrics",
        "forecast", "revenue", "negotiation", "hiring", "onboarding",
        "contract", "invoice", "resume", "cover letter", "email draft",
        "deadline",
    ],
    WeightClass.LOW: [
        "decision", "plan", "team", "project", "manager", "workflow",
        "schedule", "process", "customer", "launch", "deliverable", "agenda",
    ],
}

# Casual signal is flat: every hit is worth MEDIUM (2 points).
EVERYDAY_KEYWORDS = {
    WeightClass.MEDIUM: [
        "hi", "hello", "hey", "sup", "good morning", "good night",
        "good evening", "how are you", "whats up", "what's up", "thanks",
        "thank you", "bye", "goodbye", "see you", "ok", "okay", "cool",
        "lol", "joke", "jokes", "funny", "meme", "recipe", "recipes",
        "cook", "cooking", "movie", "movies", "song", "songs", "music",
        "playlist", "game", "games", "travel", "trip", "vacation",
        "holiday", "weather", "restaurant", "food", "dinner", "lunch",
        "breakfast", "shopping", "gift", "birthday", "party", "festival",
        "gym", "workout", "outfit", "bored", "fun", "weekend", "pet",
        "dog", "cat", "gossip", "celebrity", "cricket", "football",
    ],
}

DEFAULT_TABLE_VERSION = "2026.01"


def default_table() -> KeywordTable:
    """Build the built-in keyword table."""
    tiers: dict[Intent, tuple[WeightedKeyword, ...]] = {}
    for intent, weights in (
        (Intent.EXPERT, EXPERT_KEYWORDS),
        (Intent.PROFESSIONAL, PROFESSIONAL_KEYWORDS),
        (Intent.EVERYDAY, EVERYDAY_KEYWORDS),
    ):
        keywords: tuple[WeightedKeyword, ...] = ()
        for weight_class, phrases in weights.items():
            keywords += _build(weight_class, phrases)
        tiers[intent] = keywords
    return KeywordTable(version=DEFAULT_TABLE_VERSION, tiers=tiers)
