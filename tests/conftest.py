"""Shared fixtures for prorouter tests."""

import pytest


@pytest.fixture
def classifier():
    """IntentClassifier over the built-in keyword table."""
    from prorouter.routing.scorer import IntentClassifier
    return IntentClassifier()


@pytest.fixture
def guard():
    """BudgetGuard with default policy."""
    from prorouter.routing.budget import BudgetGuard
    return BudgetGuard()


@pytest.fixture
def selector():
    """DispatchSelector with the default provider catalog."""
    from prorouter.routing.dispatch import DispatchSelector
    return DispatchSelector()


@pytest.fixture
def router():
    """Fresh ProRouter with default settings and its own keyword registry."""
    from prorouter.routing.router import ProRouter
    return ProRouter()


@pytest.fixture
def expert_message():
    return (
        "Please do a deep risk analysis and cost-benefit analysis of this "
        "multi-variable architecture decision"
    )


@pytest.fixture
def professional_message():
    return (
        "Draft a business plan and go-to-market roadmap with pricing "
        "strategy for our client"
    )
