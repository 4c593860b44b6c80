"""
Prize Wheel — Selection engine with pity system

Weighted prize selection for the party wheel. Rare prizes get a boosted share
of the wheel after a configurable streak of non-rare spins, until one is won.

Usage:
    from sim_engine.prize import build_engine
    engine = build_engine()
    result = engine.select_prize()
    stats = engine.get_statistics()
    engine.get_expected_cost()
    engine.reset_state()
"""

from sim_engine.prize.engine import EngineStats, PrizeEngine, SpinOutcome, SpinResult
from sim_engine.prize.sessions import SessionRegistry
from sim_engine.prize.simulate import SimResult, simulate, theoretical_cost


def build_engine(config=None, rng=None, seed: int = None) -> PrizeEngine:
    """Build an engine; `seed` is a shortcut for a seeded random source."""
    if rng is None and seed is not None:
        from tools.prize_rng import SystemRandomSource
        rng = SystemRandomSource(seed)
    return PrizeEngine(config, rng=rng)


__all__ = [
    "EngineStats", "PrizeEngine", "SessionRegistry", "SimResult", "SpinOutcome",
    "SpinResult", "build_engine", "simulate", "theoretical_cost",
]
