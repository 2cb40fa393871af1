"""Loot valuation: rarity x depth x risk x market drift."""
from __future__ import annotations

import logging
import math
from typing import Any, Dict, Mapping

from depthtune.core.rng import RNG
from depthtune.domain.curves import clamp, clamp01
from depthtune.domain.defs import ResourceDef, ResourceTuning
from depthtune.domain.depth import (
    FALLBACK_DEATH_RATES,
    classify_depth,
    normalize_depth,
    risk_level_for_min_depth,
    sanitize_depth,
)
from depthtune.services.collaborators import DeathRateSource

logger = logging.getLogger(__name__)


class ResourceValuator:
    """Prices resources for the depth they were found at.

    Market factors live per resource id, seeded lazily and nudged by a
    bounded random walk; they only reset with a new economy epoch.
    """

    def __init__(
        self,
        rng: RNG,
        *,
        tuning: ResourceTuning | None = None,
        death_rates: DeathRateSource | None = None,
    ) -> None:
        self._rng = rng
        self._tuning = tuning or ResourceTuning()
        self._death_rates = death_rates
        self._market_factors: Dict[str, float] = {}
        self._economy_epoch = 0
        self._last_market_update: float | None = None

    @property
    def economy_epoch(self) -> int:
        return self._economy_epoch

    @property
    def market_factors(self) -> Dict[str, float]:
        return dict(self._market_factors)

    def value(self, resource: ResourceDef, depth: object) -> int:
        raw = (
            resource.base_value
            * self.depth_bonus(depth)
            * self.rarity_multiplier(resource)
            * self.risk_multiplier(depth)
            * self.market_factor(resource.id)
        )
        return max(0, round(raw))

    def depth_bonus(self, depth: object) -> float:
        tuning = self._tuning
        return 1.0 + normalize_depth(depth) ** tuning.depth_exponent * (tuning.max_depth_bonus - 1.0)

    def rarity_multiplier(self, resource: ResourceDef) -> float:
        return self._tuning.rarity_multipliers.get(resource.rarity, 1.0)

    def risk_multiplier(self, depth: object) -> float:
        if not self._tuning.enable_risk_adjustment:
            return 1.0
        return 1.0 + self.death_rate_at(depth) * self._tuning.risk_factor

    def death_rate_at(self, depth: object) -> float:
        current = sanitize_depth(depth)
        reported = self._death_rates.death_rate_at(current) if self._death_rates is not None else None
        if isinstance(reported, (int, float)) and not isinstance(reported, bool) and math.isfinite(reported):
            return clamp01(reported)
        return FALLBACK_DEATH_RATES[classify_depth(current)]

    def market_factor(self, resource_id: str) -> float:
        if not self._tuning.enable_market_fluctuation:
            return 1.0
        factor = self._market_factors.get(resource_id)
        if factor is None:
            low, high = self._market_bounds()
            factor = self._rng.uniform(low, high)
            self._market_factors[resource_id] = factor
        return factor

    def update_market(self) -> None:
        """Perturb every seeded factor by a bounded step and re-clamp."""
        if not self._tuning.enable_market_fluctuation:
            return
        low, high = self._market_bounds()
        step = self._tuning.market_step
        for resource_id in sorted(self._market_factors):
            drifted = self._market_factors[resource_id] + self._rng.uniform(-step, step)
            self._market_factors[resource_id] = clamp(drifted, low, high)

    def tick(self, now: float) -> bool:
        if self._last_market_update is None:
            self._last_market_update = now
            return False
        if now - self._last_market_update < self._tuning.market_update_interval:
            return False
        self._last_market_update = now
        self.update_market()
        return True

    def risk_level(self, resource: ResourceDef) -> int:
        return risk_level_for_min_depth(resource.min_depth)

    def start_new_economy_epoch(self) -> int:
        self._market_factors.clear()
        self._economy_epoch += 1
        logger.info("Economy epoch %d started; market factors cleared.", self._economy_epoch)
        return self._economy_epoch

    def export_state(self) -> Dict[str, Any]:
        return {"market_factors": dict(self._market_factors), "economy_epoch": self._economy_epoch}

    def restore_state(self, payload: Mapping[str, Any]) -> None:
        low, high = self._market_bounds()
        factors: Dict[str, float] = {}
        for resource_id, factor in dict(payload.get("market_factors") or {}).items():
            if isinstance(factor, (int, float)) and not isinstance(factor, bool) and math.isfinite(factor):
                factors[str(resource_id)] = clamp(float(factor), low, high)
        self._market_factors = factors
        epoch = payload.get("economy_epoch", 0)
        self._economy_epoch = epoch if isinstance(epoch, int) and not isinstance(epoch, bool) else 0

    def _market_bounds(self) -> tuple[float, float]:
        market_range = self._tuning.market_range
        return 1.0 - market_range, 1.0 + market_range
