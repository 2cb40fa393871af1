"""Insurance tiers and their fixed pricing/discount tables."""
from __future__ import annotations

import math
from enum import Enum


class InsuranceTier(str, Enum):
    NONE = "none"
    BASIC = "basic"
    STANDARD = "standard"
    PREMIUM = "premium"


# Fraction of the death penalty that still applies under each tier.
PENALTY_DISCOUNTS: dict[InsuranceTier, float] = {
    InsuranceTier.NONE: 1.0,
    InsuranceTier.BASIC: 0.75,
    InsuranceTier.STANDARD: 0.5,
    InsuranceTier.PREMIUM: 0.0,
}

# Purchase price as a fraction of the expected mission reward.
PURCHASE_COST_RATES: dict[InsuranceTier, float] = {
    InsuranceTier.NONE: 0.0,
    InsuranceTier.BASIC: 0.05,
    InsuranceTier.STANDARD: 0.10,
    InsuranceTier.PREMIUM: 0.20,
}


def penalty_discount(tier: InsuranceTier) -> float:
    return PENALTY_DISCOUNTS.get(tier, 1.0)


def purchase_cost(tier: InsuranceTier, expected_reward: object) -> int:
    """Price of `tier`; a non-numeric or non-finite expected reward costs nothing."""
    if isinstance(expected_reward, bool) or not isinstance(expected_reward, (int, float)):
        return 0
    if not math.isfinite(expected_reward):
        return 0
    return round(max(0.0, float(expected_reward)) * PURCHASE_COST_RATES.get(tier, 0.0))
