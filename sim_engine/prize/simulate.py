"""
Prize Wheel — Monte Carlo simulation

Spins a fresh engine many times with a seeded source and measures what the
pity boost does to payout: per-prize hit rates, average cost against the
base-table expectation, how often the boost fires and the longest dry streak.

Usage:
    from sim_engine.prize.simulate import simulate
    result = simulate(rounds=200_000, seed=7)
    print(result.summary())
"""

from __future__ import annotations

import logging
import math
import random
import time
from dataclasses import dataclass, field
from typing import Optional

from config.settings import WheelSettings
from config.wheel_schema import WheelConfig, default_wheel_config, expected_cost
from sim_engine.prize.engine import PrizeEngine

logger = logging.getLogger("prizewheel.sim")


@dataclass
class SimResult:
    """Simulation results for one wheel configuration."""
    rounds: int
    seed: int
    spin_price: float
    theoretical_cost: float          # base table, pity never active
    avg_cost: float                  # measured
    total_cost: float
    total_revenue: float
    rare_wins: int
    pity_activations: int
    boosted_spins: int               # spins drawn from the boosted table
    max_streak: int                  # longest run without a rare prize
    confidence_95: tuple = (0.0, 0.0)
    distribution: dict = field(default_factory=dict)   # prize name → hit rate
    duration_seconds: float = 0.0

    @property
    def margin(self) -> float:
        return self.spin_price - self.avg_cost

    def to_dict(self) -> dict:
        return {
            "rounds": self.rounds,
            "seed": self.seed,
            "spin_price": self.spin_price,
            "theoretical_cost": round(self.theoretical_cost, 6),
            "avg_cost": round(self.avg_cost, 6),
            "margin": round(self.margin, 6),
            "total_cost": round(self.total_cost, 2),
            "total_revenue": round(self.total_revenue, 2),
            "rare_wins": self.rare_wins,
            "pity_activations": self.pity_activations,
            "boosted_spins": self.boosted_spins,
            "max_streak": self.max_streak,
            "confidence_95": [round(x, 6) for x in self.confidence_95],
            "distribution": self.distribution,
            "duration_s": round(self.duration_seconds, 2),
        }

    def summary(self) -> str:
        lines = [
            "═══ Prize Wheel Simulation ═══",
            f"  Rounds:        {self.rounds:,}  (seed {self.seed})",
            f"  Theoretical:   {self.theoretical_cost:.4f} € / spin (no pity)",
            f"  Measured:      {self.avg_cost:.4f} € / spin",
            f"  95% CI:        [{self.confidence_95[0]:.4f}, {self.confidence_95[1]:.4f}]",
            f"  Spin price:    {self.spin_price:.2f} €  → margin {self.margin:.4f} €",
            f"  Rare wins:     {self.rare_wins:,}",
            f"  Pity fired:    {self.pity_activations:,}  ({self.boosted_spins:,} boosted spins)",
            f"  Max streak:    {self.max_streak}",
        ]
        for name, rate in self.distribution.items():
            lines.append(f"    {name:20s} {rate * 100:7.3f}%")
        return "\n".join(lines)


def theoretical_cost(config: Optional[WheelConfig] = None) -> float:
    """Expected payout per spin with the boost never active."""
    return expected_cost(config or default_wheel_config())


def simulate(config: Optional[WheelConfig] = None, rounds: int = None,
             seed: int = None) -> SimResult:
    """Run a Monte Carlo simulation on a fresh engine."""
    config = config or default_wheel_config()
    rounds = rounds if rounds is not None else WheelSettings.SIM_ROUNDS
    seed = seed if seed is not None else WheelSettings.SIM_SEED
    if rounds <= 0:
        raise ValueError(f"rounds must be positive, got {rounds}")

    engine = PrizeEngine(config, rng=random.Random(seed))
    started = time.time()

    costs = []
    rare_wins = activations = boosted = 0
    streak = max_streak = 0
    for _ in range(rounds):
        was_active = engine.is_pity_active
        if was_active and config.pity.enabled:
            boosted += 1
        result = engine.select_prize()
        costs.append(result.prize.cost)
        if config.is_rare(result.index):
            rare_wins += 1
            streak = 0
        else:
            streak += 1
            max_streak = max(max_streak, streak)
        if config.pity.enabled and result.was_pity_active and not was_active:
            activations += 1

    stats = engine.get_statistics()
    total_cost = math.fsum(costs)
    avg = total_cost / rounds
    variance = math.fsum((c - avg) ** 2 for c in costs) / rounds
    std_err = math.sqrt(variance / rounds)

    result = SimResult(
        rounds=rounds,
        seed=seed,
        spin_price=config.spin_price,
        theoretical_cost=expected_cost(config),
        avg_cost=avg,
        total_cost=total_cost,
        total_revenue=stats.total_revenue,
        rare_wins=rare_wins,
        pity_activations=activations,
        boosted_spins=boosted,
        max_streak=max_streak,
        confidence_95=(avg - 1.96 * std_err, avg + 1.96 * std_err),
        distribution={
            prize.name: round(count / rounds, 6)
            for prize, count in zip(config.prizes, stats.prize_counts)
        },
        duration_seconds=time.time() - started,
    )
    logger.info(f"Simulated {rounds:,} spins: avg cost {avg:.4f} "
                f"(theoretical {result.theoretical_cost:.4f}), pity fired {activations}x")
    return result
