"""
Subscription plans: static limits and feature flags per tier.

A limit of ``UNLIMITED`` (-1) disables the corresponding check.
"""
from dataclasses import dataclass, field
from typing import FrozenSet

UNLIMITED = -1

_MB = 1024 * 1024
_GB = 1024 * _MB


@dataclass(frozen=True)
class Plan:
    id: str
    name: str
    max_documents: int
    max_storage_bytes: int
    max_file_size_bytes: int
    features: FrozenSet[str] = field(default_factory=frozenset)

    def has_feature(self, feature: str) -> bool:
        return feature in self.features


_PRO_FEATURES = frozenset({
    "basic_qa", "advanced_qa", "analytics", "api_access", "priority_support",
})

PLANS = {
    "free": Plan(
        id="free",
        name="Free",
        max_documents=10,
        max_storage_bytes=100 * _MB,
        max_file_size_bytes=10 * _MB,
        features=frozenset({"basic_qa"}),
    ),
    "pro": Plan(
        id="pro",
        name="Pro",
        max_documents=100,
        max_storage_bytes=10 * _GB,
        max_file_size_bytes=50 * _MB,
        features=_PRO_FEATURES,
    ),
    "enterprise": Plan(
        id="enterprise",
        name="Enterprise",
        max_documents=UNLIMITED,
        max_storage_bytes=UNLIMITED,
        max_file_size_bytes=50 * _MB,
        features=_PRO_FEATURES | {"custom_models", "sso", "dedicated_support"},
    ),
}


def get_plan(plan_id: str) -> Plan:
    """Return the plan for ``plan_id``; unknown ids fall back to the free plan."""
    return PLANS.get(plan_id) or PLANS["free"]


def is_within_limit(requested: int, limit: int) -> bool:
    return limit == UNLIMITED or requested <= limit
