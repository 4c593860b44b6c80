"""
Prize Wheel - Configuration Schema

Validated, immutable description of a wheel: the prize catalog, the base
probability table aligned with it, the pity tuning and the reporting knobs.
Every configuration defect is rejected here, when the config is built, so the
engine never has to second-guess its inputs during a spin.

Usage:
    from config.wheel_schema import WheelConfig, default_wheel_config
    config = default_wheel_config()
    config = default_wheel_config(pity={"threshold_spins": 20})
    json_str = config.model_dump_json(indent=2)
"""

from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


PROBABILITY_TOTAL = 100.0
SUM_TOLERANCE = 1e-6


# ═══════════════════════════════════════════════════════════════
# Catalog
# ═══════════════════════════════════════════════════════════════

class Prize(BaseModel):
    """One wheel segment. `id` is also its position in the catalog."""
    model_config = ConfigDict(frozen=True)

    id: int = Field(ge=0)
    name: str
    cost: float = Field(default=0.0, ge=0)    # € paid out, reporting only
    icon: str = ""
    color: str = "#808080"


# ═══════════════════════════════════════════════════════════════
# Pity
# ═══════════════════════════════════════════════════════════════

class PityConfig(BaseModel):
    """Rare-prize boost after a long streak without one."""
    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    rare_indexes: frozenset[int] = Field(default_factory=lambda: frozenset({0, 1, 2}))
    threshold_spins: int = Field(default=30, gt=0)
    multiplier: float = Field(default=2.0, gt=1)
    reset_on_win: bool = True

    @field_validator("rare_indexes")
    @classmethod
    def _non_negative(cls, v):
        negatives = sorted(i for i in v if i < 0)
        if negatives:
            raise ValueError(f"rare_indexes must be catalog positions, got {negatives}")
        return v


# ═══════════════════════════════════════════════════════════════
# Wheel
# ═══════════════════════════════════════════════════════════════

class WheelConfig(BaseModel):
    """Complete engine configuration."""
    model_config = ConfigDict(frozen=True)

    prizes: tuple[Prize, ...]
    base_probabilities: tuple[float, ...]
    pity: PityConfig = Field(default_factory=PityConfig)
    history_size: int = Field(default=10, gt=0)
    spin_price: float = Field(default=2.0, ge=0)

    @field_validator("prizes")
    @classmethod
    def _positional_catalog(cls, v):
        if not v:
            raise ValueError("prize catalog is empty")
        for position, prize in enumerate(v):
            if prize.id != position:
                raise ValueError(
                    f"prize '{prize.name}' has id {prize.id} but sits at position {position}"
                )
        return v

    @field_validator("base_probabilities")
    @classmethod
    def _valid_table(cls, v):
        for i, p in enumerate(v):
            if not math.isfinite(p) or p < 0:
                raise ValueError(f"base probability at index {i} must be a finite number >= 0, got {p}")
        total = math.fsum(v)
        if abs(total - PROBABILITY_TOTAL) > SUM_TOLERANCE:
            raise ValueError(f"base probabilities sum to {total}, expected {PROBABILITY_TOTAL}")
        return v

    @model_validator(mode="after")
    def _aligned(self):
        if len(self.base_probabilities) != len(self.prizes):
            raise ValueError(
                f"{len(self.base_probabilities)} base probabilities for "
                f"{len(self.prizes)} prizes"
            )
        out_of_range = sorted(i for i in self.pity.rare_indexes if i >= len(self.prizes))
        if out_of_range:
            raise ValueError(
                f"rare_indexes {out_of_range} out of range for a {len(self.prizes)}-prize catalog"
            )
        return self

    def is_rare(self, index: int) -> bool:
        return index in self.pity.rare_indexes


# ═══════════════════════════════════════════════════════════════
# Builders
# ═══════════════════════════════════════════════════════════════

def default_wheel_config(**overrides) -> WheelConfig:
    """Build the shipped wheel, layering env settings and explicit overrides.

    `pity` may be passed as a partial dict; it is merged over the catalog's
    pity defaults rather than replacing them.
    """
    from config.settings import WheelSettings
    from sim_engine.prize import catalog

    pity = dict(catalog.PITY_DEFAULTS)
    env_pity = {
        "enabled": WheelSettings.PITY_ENABLED,
        "threshold_spins": WheelSettings.PITY_THRESHOLD_SPINS,
        "multiplier": WheelSettings.PITY_MULTIPLIER,
        "reset_on_win": WheelSettings.PITY_RESET_ON_WIN,
    }
    pity.update({k: v for k, v in env_pity.items() if v is not None})
    pity.update(overrides.pop("pity", None) or {})

    data = {
        "prizes": catalog.PRIZES,
        "base_probabilities": catalog.BASE_PROBABILITIES,
        "pity": pity,
        "history_size": (WheelSettings.HISTORY_SIZE if WheelSettings.HISTORY_SIZE is not None
                         else catalog.HISTORY_SIZE),
        "spin_price": (WheelSettings.SPIN_PRICE if WheelSettings.SPIN_PRICE is not None
                       else catalog.SPIN_PRICE),
    }
    data.update(overrides)
    return WheelConfig.model_validate(data)


def expected_cost(config: WheelConfig, probabilities=None) -> float:
    """Probability-weighted payout per spin (base table unless given)."""
    table = config.base_probabilities if probabilities is None else probabilities
    return math.fsum((p / PROBABILITY_TOTAL) * prize.cost
                     for p, prize in zip(table, config.prizes))


def validate_config(config: WheelConfig) -> list[str]:
    """Run sanity checks on a valid config and return a list of warnings."""
    warnings = []

    base_cost = expected_cost(config)
    if base_cost > config.spin_price:
        warnings.append(
            f"Expected payout {base_cost:.2f} exceeds spin price {config.spin_price:.2f}; "
            f"the wheel loses money on average"
        )

    if not config.pity.enabled and config.pity.rare_indexes:
        warnings.append("Pity disabled but rare_indexes configured; they are ignored")

    rare_mass = math.fsum(config.base_probabilities[i] for i in config.pity.rare_indexes)
    if rare_mass > 50:
        warnings.append(f"Rare prizes hold {rare_mass:.1f}% of the base table; they are not rare")

    if config.pity.enabled and rare_mass == 0 and config.pity.rare_indexes:
        warnings.append("Rare prizes have zero base probability; the pity boost has no effect")

    return warnings
