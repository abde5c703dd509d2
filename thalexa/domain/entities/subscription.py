from __future__ import annotations

from dataclasses import dataclass

from thalexa.domain.entities.units import MIST_PER_SUI


@dataclass(frozen=True)
class SubscriptionTier:
    id: int
    code: str
    name: str
    price_mist: int
    monthly_volume_limit: int | None
    products_per_month: int | None
    transactions_per_day: int | None


DEFAULT_SUBSCRIPTION_TIERS = (
    SubscriptionTier(
        id=0,
        code="starter",
        name="Starter",
        price_mist=0,
        monthly_volume_limit=2_000,
        products_per_month=0,
        transactions_per_day=10,
    ),
    SubscriptionTier(
        id=1,
        code="professional",
        name="Professional",
        price_mist=500 * MIST_PER_SUI,
        monthly_volume_limit=200_000,
        products_per_month=300,
        transactions_per_day=1_000,
    ),
    SubscriptionTier(
        id=2,
        code="enterprise",
        name="Enterprise",
        price_mist=2_000 * MIST_PER_SUI,
        monthly_volume_limit=None,
        products_per_month=None,
        transactions_per_day=None,
    ),
)


def build_subscription_tiers(price_overrides: dict) -> dict[int, SubscriptionTier]:
    tiers: dict[int, SubscriptionTier] = {}
    for tier in DEFAULT_SUBSCRIPTION_TIERS:
        override = price_overrides.get(tier.code)
        if override is None:
            override = price_overrides.get(str(tier.id))
        if override is not None:
            tier = SubscriptionTier(
                id=tier.id,
                code=tier.code,
                name=tier.name,
                price_mist=int(override),
                monthly_volume_limit=tier.monthly_volume_limit,
                products_per_month=tier.products_per_month,
                transactions_per_day=tier.transactions_per_day,
            )
        tiers[tier.id] = tier
    return tiers
