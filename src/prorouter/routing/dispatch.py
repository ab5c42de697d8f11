"""Deterministic provider dispatch.

Splits traffic between equivalent-tier providers using a stable hash
of the message (and optionally the user id). The same message from
the same user always lands on the same provider, which keeps caches
warm and makes "why did this go there?" answerable after the fact.

No retries, no randomness: a denied premium request degrades to
exactly one fallback provider, with the reason surfaced.
"""

from dataclasses import dataclass

from prorouter.config import DispatchPolicy
from prorouter.routing.budget import Admission, FallbackReason
from prorouter.routing.keywords import Intent

INT32_MASK = 0xFFFFFFFF
INT32_SIGN = 0x80000000
HASH_BUCKETS = 100


def stable_hash(text: str) -> int:
    """32-bit rolling hash (h = h*31 + unit), signed, over UTF-16 code units.

    Matches the classic Java/JavaScript string hash, so buckets agree
    with any other service using the same scheme.
    """
    data = text.encode("utf-16-le")
    h = 0
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        h = (h * 31 + unit) & INT32_MASK
    if h & INT32_SIGN:
        h -= 1 << 32
    return h


def routing_hash(message: str | None, user_id: str | None = None) -> int:
    """Bucket in [0, 99] for a message (and optional user)."""
    message = message or ""
    key = f"{user_id}:{message}" if user_id else message
    return abs(stable_hash(key)) % HASH_BUCKETS


def select_by_hash(bucket: int, distribution: list[tuple[str, int]]) -> str:
    """Pick from a cumulative-threshold distribution.

    Args:
        bucket: Hash bucket in [0, 99].
        distribution: (provider_id, exclusive upper threshold) pairs in
            ascending threshold order, e.g. [("a", 60), ("b", 100)].
    """
    for provider_id, threshold in distribution:
        if bucket < threshold:
            return provider_id
    return distribution[-1][0]


@dataclass(frozen=True)
class ProviderSpec:
    """A backend model provider."""
    provider_id: str
    display_name: str
    cost_per_1m: float = 100.0
    is_premium: bool = False


@dataclass(frozen=True)
class DispatchDecision:
    """Which provider serves the request, and why."""
    provider_id: str
    display_name: str
    used_fallback: bool = False
    fallback_reason: FallbackReason | None = None
    routing_hash: int = 0


class DispatchSelector:
    """Hash-seeded provider selection per intent.

    - EVERYDAY: fast/cheap split (60:40), never premium
    - PROFESSIONAL: premium on soft escalation; otherwise a mid-tier
      split that skews toward the cheaper provider under budget pressure
    - EXPERT: premium if admitted, else one designated fallback
    """

    def __init__(self, policy: DispatchPolicy | None = None):
        self.policy = policy or DispatchPolicy()
        self.providers: dict[str, ProviderSpec] = {
            p.provider_id: ProviderSpec(
                provider_id=p.provider_id,
                display_name=p.display_name,
                cost_per_1m=p.cost_per_1m,
                is_premium=p.is_premium,
            )
            for p in self.policy.providers
        }

    @property
    def premium_provider_id(self) -> str:
        return self.policy.premium

    def display_name(self, provider_id: str) -> str:
        spec = self.providers.get(provider_id)
        return spec.display_name if spec else provider_id

    def select(self, intent: Intent, admission: Admission, bucket: int) -> DispatchDecision:
        """Select a provider for an admitted/denied request.

        Args:
            intent: Classified intent.
            admission: BudgetGuard verdict (carries remaining budget).
            bucket: Routing hash bucket in [0, 99].
        """
        p = self.policy

        if intent == Intent.EVERYDAY:
            provider_id = select_by_hash(bucket, [
                (p.everyday_fast, p.everyday_fast_share),
                (p.everyday_cheap, HASH_BUCKETS),
            ])
            return self._decision(provider_id, bucket)

        if intent == Intent.PROFESSIONAL:
            if admission.allowed and admission.soft_escalation:
                return self._decision(p.premium, bucket)

            if admission.tokens_remaining > p.mid_tier_threshold:
                share = p.professional_balanced_share
            else:
                share = p.professional_pressure_share
            provider_id = select_by_hash(bucket, [
                (p.professional_cheaper, share),
                (p.professional_other, HASH_BUCKETS),
            ])
            return self._decision(provider_id, bucket)

        if admission.allowed:
            return self._decision(p.premium, bucket)

        return self._decision(
            p.expert_fallback,
            bucket,
            used_fallback=True,
            fallback_reason=admission.fallback_reason or FallbackReason.NOT_ALLOWED,
        )

    def fallback_provider(self, intent: Intent) -> str:
        """Provider used when premium is unavailable for an intent."""
        p = self.policy
        if intent == Intent.EXPERT:
            return p.expert_fallback
        if intent == Intent.PROFESSIONAL:
            return p.professional_cheaper
        return p.everyday_fast

    def estimate_call_cost(self, provider_id: str, estimated_tokens: int) -> float:
        """Approximate call cost in currency units, for analytics."""
        spec = self.providers.get(provider_id)
        cost_per_1m = spec.cost_per_1m if spec else 100.0
        return estimated_tokens / 1_000_000 * cost_per_1m

    def _decision(
        self,
        provider_id: str,
        bucket: int,
        used_fallback: bool = False,
        fallback_reason: FallbackReason | None = None,
    ) -> DispatchDecision:
        return DispatchDecision(
            provider_id=provider_id,
            display_name=self.display_name(provider_id),
            used_fallback=used_fallback,
            fallback_reason=fallback_reason,
            routing_hash=bucket,
        )
