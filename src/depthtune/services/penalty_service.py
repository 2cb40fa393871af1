"""Death penalty computation and insurance policy state."""
from __future__ import annotations

import logging
import math

from depthtune.domain.curves import clamp01, lerp
from depthtune.domain.defs import PenaltyTuning
from depthtune.domain.depth import normalize_depth, sanitize_depth
from depthtune.domain.insurance import InsuranceTier, penalty_discount, purchase_cost
from depthtune.domain.penalty import DeathContext, DeathReport

logger = logging.getLogger(__name__)


class PenaltyCalculator:
    """Computes DeathReports; applying them is someone else's job."""

    def __init__(self, tuning: PenaltyTuning | None = None) -> None:
        self._tuning = tuning or PenaltyTuning()
        self._insurance = InsuranceTier.NONE

    @property
    def tuning(self) -> PenaltyTuning:
        return self._tuning

    @property
    def insurance(self) -> InsuranceTier:
        return self._insurance

    def apply_death_penalty(self, context: DeathContext) -> DeathReport:
        tuning = self._tuning
        depth = sanitize_depth(context.depth)
        duration = _non_negative(context.session_duration)
        survival_bonus = self.survival_bonus(duration)
        if not tuning.enable_death_penalty:
            return DeathReport(
                no_penalty=True,
                depth=depth,
                cause=context.cause,
                session_duration=duration,
                survival_bonus_xp=survival_bonus,
            )

        multiplier = normalize_depth(depth)
        insured = self._insurance is not InsuranceTier.NONE
        if insured:
            multiplier *= penalty_discount(self._insurance)
        multiplier = clamp01(multiplier)

        report = DeathReport(
            no_penalty=False,
            depth=depth,
            cause=context.cause,
            session_duration=duration,
            penalty_multiplier=multiplier,
            resource_loss_percent=lerp(tuning.base_resource_loss, tuning.max_resource_loss, multiplier),
            credit_loss_percent=lerp(tuning.base_credit_loss, tuning.max_credit_loss, multiplier),
            equipment_damage_percent=lerp(tuning.base_equipment_damage, tuning.max_equipment_damage, multiplier)
            if tuning.enable_equipment_damage
            else 0.0,
            xp_loss_percent=lerp(tuning.base_xp_loss, tuning.max_xp_loss, multiplier)
            if tuning.enable_xp_loss
            else 0.0,
            respawn_delay=lerp(tuning.base_respawn_delay, tuning.max_respawn_delay, multiplier),
            insurance_applied=insured,
            insurance_tier=self._insurance,
            survival_bonus_xp=survival_bonus,
        )
        logger.info(
            "Death penalty at depth %.1f: multiplier=%.3f resources=%.1f%% credits=%.1f%% insurance=%s",
            depth,
            multiplier,
            report.resource_loss_percent,
            report.credit_loss_percent,
            self._insurance.value,
        )
        return report

    def survival_bonus(self, session_duration: float) -> int:
        return round(_non_negative(session_duration) / 60.0 * self._tuning.survival_bonus_per_minute)

    def purchase_insurance(self, tier: InsuranceTier, expected_reward: float) -> int:
        """Activate `tier` for the current dive and return its price."""
        cost = purchase_cost(tier, expected_reward)
        self._insurance = tier
        logger.info("Insurance %s purchased for %d credits.", tier.value, cost)
        return cost

    def clear_insurance(self) -> bool:
        """End-of-dive reset. Returns True if a policy was actually cleared."""
        if self._insurance is InsuranceTier.NONE:
            return False
        logger.info("Insurance %s expired at dive end.", self._insurance.value)
        self._insurance = InsuranceTier.NONE
        return True


def _non_negative(value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        return 0.0
    return max(0.0, float(value))
