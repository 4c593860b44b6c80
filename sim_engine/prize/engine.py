"""Prize Wheel — Selection engine with latching pity boost.

One engine instance owns one wheel's run-time state. Each spin draws a prize
from the effective probability table (base table, or the renormalised boosted
table while pity is active), then advances the streak / pity latch and the
rolling history. All state transitions happen under a per-engine lock so
concurrent callers see one consistent transition per spin.
"""

from __future__ import annotations

import logging
import math
import threading
import time
import uuid
from collections import deque
from dataclasses import dataclass, field
from typing import Optional

from config.wheel_schema import (
    PROBABILITY_TOTAL, Prize, WheelConfig, default_wheel_config, expected_cost,
)

logger = logging.getLogger("prizewheel.engine")


@dataclass(frozen=True)
class SpinOutcome:
    """Immutable record of one spin, as kept in the history."""
    spin_id: str
    prize: Prize
    timestamp: float
    was_pity_active: bool
    spins_without_rare: int

    def to_dict(self) -> dict:
        return {
            "spin_id": self.spin_id,
            "prize": self.prize.model_dump(),
            "timestamp": self.timestamp,
            "was_pity_active": self.was_pity_active,
            "spins_without_rare": self.spins_without_rare,
        }


@dataclass(frozen=True)
class SpinResult:
    """What select_prize() hands back to the caller."""
    prize: Prize
    spin_id: str
    was_pity_active: bool

    @property
    def index(self) -> int:
        return self.prize.id

    def to_dict(self) -> dict:
        return {
            **self.prize.model_dump(),
            "spin_id": self.spin_id,
            "was_pity_active": self.was_pity_active,
        }


@dataclass
class EngineStats:
    """Point-in-time snapshot of an engine."""
    total_spins: int
    spins_without_rare: int
    is_pity_active: bool
    spin_history: list
    current_probabilities: list
    base_probabilities: list
    prize_counts: list = field(default_factory=list)
    expected_cost: float = 0.0
    total_revenue: float = 0.0

    def to_dict(self) -> dict:
        return {
            "total_spins": self.total_spins,
            "spins_without_rare": self.spins_without_rare,
            "is_pity_active": self.is_pity_active,
            "spin_history": [o.to_dict() for o in self.spin_history],
            "current_probabilities": [round(p, 6) for p in self.current_probabilities],
            "base_probabilities": list(self.base_probabilities),
            "prize_counts": list(self.prize_counts),
            "expected_cost": round(self.expected_cost, 6),
            "total_revenue": round(self.total_revenue, 2),
        }


class PrizeEngine:
    """Weighted prize selection with a streak-driven rare-prize boost.

    Args:
        config: validated wheel configuration (defaults to the shipped wheel)
        rng: any object with random() -> float in [0, 1)
    """

    def __init__(self, config: Optional[WheelConfig] = None, rng=None):
        if config is None:
            config = default_wheel_config()
        if rng is None:
            from tools.prize_rng import make_random_source
            rng = make_random_source()
        if not callable(getattr(rng, "random", None)):
            raise ValueError(f"Random source {rng!r} has no random() method")

        self.config = config
        self.rng = rng
        self._lock = threading.Lock()
        self._reset_locked()

    # ── State ────────────────────────────────────────────────

    def _reset_locked(self):
        self._total_spins = 0
        self._spins_without_rare = 0
        self._pity_active = False
        self._history = deque(maxlen=self.config.history_size)
        self._prize_counts = [0] * len(self.config.prizes)

    def reset_state(self) -> None:
        """Clear counters, pity latch and history (daily reset / test setup)."""
        with self._lock:
            spins = self._total_spins
            self._reset_locked()
        logger.info(f"Engine state reset (was {spins} spins)")

    # ── Probabilities ────────────────────────────────────────

    def _effective_locked(self) -> list:
        probabilities = list(self.config.base_probabilities)
        pity = self.config.pity
        if not (pity.enabled and self._pity_active):
            return probabilities

        for index in pity.rare_indexes:
            probabilities[index] *= pity.multiplier
        total = math.fsum(probabilities)
        return [(p / total) * PROBABILITY_TOTAL for p in probabilities]

    def compute_effective_probabilities(self) -> list:
        """Current draw table (percentage points, catalog order, sums to 100)."""
        with self._lock:
            return self._effective_locked()

    def is_rare(self, index: int) -> bool:
        return self.config.is_rare(index)

    # ── Selection ────────────────────────────────────────────

    def _draw_index(self, probabilities: list) -> int:
        # Half-open bands [before, after): a zero-width band is never hit
        r = self.rng.random() * PROBABILITY_TOTAL
        cumulative = 0.0
        for i, p in enumerate(probabilities):
            cumulative += p
            if r < cumulative:
                return i
        logger.debug(f"Draw {r:.10f} fell past cumulative {cumulative:.10f}; using last prize")
        return len(probabilities) - 1

    def select_prize(self) -> SpinResult:
        """Spin once: draw a prize and advance streak, pity latch and history."""
        pity = self.config.pity

        with self._lock:
            index = self._draw_index(self._effective_locked())
            prize = self.config.prizes[index]
            rare = self.config.is_rare(index)
            was_active = self._pity_active

            self._total_spins += 1
            if rare and pity.reset_on_win:
                self._spins_without_rare = 0
                self._pity_active = False
            elif not rare:
                self._spins_without_rare += 1
                if self._spins_without_rare >= pity.threshold_spins:
                    self._pity_active = True

            outcome = SpinOutcome(
                spin_id=f"spin_{uuid.uuid4().hex[:16]}",
                prize=prize,
                timestamp=time.time(),
                was_pity_active=self._pity_active,
                spins_without_rare=self._spins_without_rare,
            )
            self._history.appendleft(outcome)
            self._prize_counts[index] += 1
            streak = self._spins_without_rare

        if outcome.was_pity_active != was_active:
            if outcome.was_pity_active:
                logger.info(f"Pity boost activated after {streak} spins without a rare prize")
            else:
                logger.info(f"Rare prize '{prize.name}' won; pity boost reset")
        logger.debug(f"Spin {outcome.spin_id}: {prize.name} (rare={rare}, streak={streak})")

        return SpinResult(prize=prize, spin_id=outcome.spin_id,
                          was_pity_active=outcome.was_pity_active)

    # ── Reporting ────────────────────────────────────────────

    def get_statistics(self) -> EngineStats:
        """Consistent snapshot; never exposes engine-owned containers."""
        with self._lock:
            current = self._effective_locked()
            return EngineStats(
                total_spins=self._total_spins,
                spins_without_rare=self._spins_without_rare,
                is_pity_active=self._pity_active,
                spin_history=list(self._history),
                current_probabilities=current,
                base_probabilities=list(self.config.base_probabilities),
                prize_counts=list(self._prize_counts),
                expected_cost=expected_cost(self.config, current),
                total_revenue=self._total_spins * self.config.spin_price,
            )

    def get_expected_cost(self) -> float:
        """Expected payout per spin under the current effective table."""
        return expected_cost(self.config, self.compute_effective_probabilities())

    def expected_margin(self) -> float:
        """Spin price minus expected payout, under the current table."""
        return self.config.spin_price - self.get_expected_cost()

    def rare_probability(self) -> float:
        """Combined effective probability (%) of the rare prizes."""
        probabilities = self.compute_effective_probabilities()
        return math.fsum(probabilities[i] for i in self.config.pity.rare_indexes)

    @property
    def is_pity_active(self) -> bool:
        with self._lock:
            return self._pity_active
