#!/usr/bin/env python3
"""
Prize Wheel — Unit Test Suite

Run: python tests.py
     python tests.py -v              # verbose
     python tests.py TestPityLatch   # run specific class

Test categories:
  TestEffectiveProbabilities — base table passthrough, boost + renormalisation
  TestSelectPrize            — band walk, index range, draw fallback
  TestPityLatch              — threshold activation, latch, reset-on-win
  TestHistoryAndStats        — bounded history, snapshots, reset
  TestExpectedCost           — payout per spin, base vs boosted
  TestConfigValidation       — fail-fast construction checks
  TestRandomSources          — sequence, seeded, provably fair
"""

import math
import random
import sys
import unittest
from pathlib import Path
from unittest import mock

# ── Ensure project root is on sys.path ──
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from config.settings import WheelSettings
from config.wheel_schema import WheelConfig, default_wheel_config, validate_config
from sim_engine.prize import PrizeEngine
from sim_engine.prize.catalog import BASE_PROBABILITIES, PRIZES
from tools.prize_rng import (
    ProvablyFairSource, SequenceRandomSource, SystemRandomSource, make_random_source,
)

# Draw values that land on the same prize in both the base and boosted tables
MISS = 0.5      # r = 50  → "Miss" (index 7)
MOET = 0.0      # r = 0   → "Moët" (index 0, rare)

BOOSTED_TOTAL = 101.8   # 100 + 0.2 + 0.4 + 1.2 after doubling the rare prizes


def make_engine(values, cycle=False, **overrides):
    config = default_wheel_config(**overrides)
    return PrizeEngine(config, rng=SequenceRandomSource(values, cycle=cycle))


# ============================================================
# Effective probabilities
# ============================================================

class TestEffectiveProbabilities(unittest.TestCase):

    def test_inactive_table_equals_base_exactly(self):
        """No normalisation drift while pity is inactive."""
        engine = make_engine([MISS])
        self.assertEqual(engine.compute_effective_probabilities(), list(BASE_PROBABILITIES))

    def test_returns_a_copy(self):
        engine = make_engine([MISS])
        table = engine.compute_effective_probabilities()
        table[0] = 99.0
        self.assertEqual(engine.compute_effective_probabilities()[0], 0.2)

    def test_boosted_table_doubles_and_renormalises(self):
        engine = make_engine([MISS] * 30)
        for _ in range(30):
            engine.select_prize()

        table = engine.compute_effective_probabilities()
        self.assertAlmostEqual(math.fsum(table), 100.0, delta=1e-6)
        self.assertAlmostEqual(table[0], 0.4 / BOOSTED_TOTAL * 100, places=12)
        self.assertAlmostEqual(table[2], 2.4 / BOOSTED_TOTAL * 100, places=12)
        self.assertAlmostEqual(table[7], 88.4 / BOOSTED_TOTAL * 100, places=12)

    def test_large_multiplier_still_sums_to_100(self):
        engine = make_engine([MISS] * 5, pity={"threshold_spins": 5, "multiplier": 1e6})
        for _ in range(5):
            engine.select_prize()
        self.assertAlmostEqual(math.fsum(engine.compute_effective_probabilities()), 100.0,
                               delta=1e-6)

    def test_disabled_pity_never_boosts(self):
        engine = make_engine([MISS] * 40, pity={"enabled": False})
        for _ in range(40):
            engine.select_prize()
        self.assertEqual(engine.compute_effective_probabilities(), list(BASE_PROBABILITIES))


# ============================================================
# Selection
# ============================================================

class TestSelectPrize(unittest.TestCase):

    def test_band_walk_picks_expected_prizes(self):
        # Bands: [0,.2) [.2,.6) [.6,1.8) [1.8,2.6) [2.6,4.1) [4.1,6.6) [6.6,11.6) [11.6,100)
        draws = [0.0, 0.003, 0.01, 0.02, 0.03, 0.05, 0.08, 0.2, 0.999]
        expected = [0, 1, 2, 3, 4, 5, 6, 7, 7]
        engine = make_engine(draws)
        got = [engine.select_prize().index for _ in draws]
        self.assertEqual(got, expected)

    def test_band_edges_are_half_open(self):
        # r = 0.2 exactly is the start of band 1, not the end of band 0
        engine = make_engine([0.002])
        self.assertEqual(engine.select_prize().index, 1)

    def test_zero_probability_prize_never_drawn(self):
        engine = make_engine([0.0], base_probabilities=(0, 0, 0, 0, 0, 0, 0, 100))
        self.assertEqual(engine.select_prize().index, 7)

    def test_index_always_in_catalog(self):
        engine = PrizeEngine(default_wheel_config(), rng=random.Random(1234))
        for _ in range(2000):
            result = engine.select_prize()
            self.assertTrue(0 <= result.index < len(PRIZES))
            self.assertEqual(result.prize.name, PRIZES[result.index]["name"])

    def test_draw_past_cumulative_falls_back_to_last_prize(self):
        engine = make_engine([0.99])
        self.assertEqual(engine._draw_index([10.0] * 8), 7)

    def test_result_metadata(self):
        engine = make_engine([MISS])
        result = engine.select_prize()
        self.assertTrue(result.spin_id.startswith("spin_"))
        self.assertFalse(result.was_pity_active)
        payload = result.to_dict()
        self.assertEqual(payload["name"], "Miss")
        self.assertEqual(payload["spin_id"], result.spin_id)
        self.assertIn("was_pity_active", payload)

    def test_spin_ids_are_unique(self):
        engine = make_engine([MISS], cycle=True)
        ids = {engine.select_prize().spin_id for _ in range(500)}
        self.assertEqual(len(ids), 500)


# ============================================================
# Pity latch
# ============================================================

class TestPityLatch(unittest.TestCase):

    def test_activates_on_threshold_spin(self):
        engine = make_engine([MISS] * 30)
        for _ in range(29):
            self.assertFalse(engine.select_prize().was_pity_active)
        self.assertFalse(engine.get_statistics().is_pity_active)

        result = engine.select_prize()
        self.assertTrue(result.was_pity_active)
        stats = engine.get_statistics()
        self.assertTrue(stats.is_pity_active)
        self.assertEqual(stats.spins_without_rare, 30)

    def test_stays_latched_past_threshold(self):
        engine = make_engine([MISS] * 45)
        for _ in range(30):
            engine.select_prize()
        for _ in range(15):
            self.assertTrue(engine.select_prize().was_pity_active)
        self.assertEqual(engine.get_statistics().spins_without_rare, 45)

    def test_concrete_scenario_rare_win_resets(self):
        """30 misses boost the wheel; Moët on spin 31 resets it."""
        engine = make_engine([MISS] * 30 + [MOET])
        for _ in range(30):
            engine.select_prize()
        self.assertTrue(engine.get_statistics().is_pity_active)
        self.assertAlmostEqual(engine.get_expected_cost(), 277 / BOOSTED_TOTAL, places=9)

        result = engine.select_prize()
        self.assertEqual(result.index, 0)
        self.assertFalse(result.was_pity_active)

        stats = engine.get_statistics()
        self.assertEqual(stats.spins_without_rare, 0)
        self.assertFalse(stats.is_pity_active)
        self.assertEqual(stats.total_spins, 31)
        self.assertAlmostEqual(engine.get_expected_cost(), 1.95, places=9)

    def test_rare_win_below_threshold_resets_streak(self):
        engine = make_engine([MISS] * 12 + [MOET])
        for _ in range(13):
            engine.select_prize()
        self.assertEqual(engine.get_statistics().spins_without_rare, 0)

    def test_rare_win_without_reset_policy_keeps_state(self):
        engine = make_engine([MISS] * 30 + [MOET], pity={"reset_on_win": False})
        for _ in range(31):
            engine.select_prize()
        stats = engine.get_statistics()
        self.assertTrue(stats.is_pity_active)
        self.assertEqual(stats.spins_without_rare, 30)
        self.assertEqual(stats.spin_history[0].prize.name, "Moët")

    def test_outcome_records_state_after_update(self):
        engine = make_engine([MISS] * 3, pity={"threshold_spins": 3})
        for _ in range(3):
            engine.select_prize()
        streaks = [o.spins_without_rare for o in engine.get_statistics().spin_history]
        flags = [o.was_pity_active for o in engine.get_statistics().spin_history]
        self.assertEqual(streaks, [3, 2, 1])
        self.assertEqual(flags, [True, False, False])


# ============================================================
# History, statistics, reset
# ============================================================

class TestHistoryAndStats(unittest.TestCase):

    def test_history_bounded_most_recent_first(self):
        engine = make_engine([MISS], cycle=True)
        results = [engine.select_prize() for _ in range(15)]
        stats = engine.get_statistics()
        self.assertEqual(len(stats.spin_history), 10)
        self.assertEqual(stats.spin_history[0].spin_id, results[-1].spin_id)
        self.assertEqual(stats.spin_history[-1].spin_id, results[5].spin_id)
        self.assertEqual(stats.total_spins, 15)

    def test_history_size_is_configurable(self):
        engine = make_engine([MISS], cycle=True, history_size=3)
        for _ in range(7):
            engine.select_prize()
        self.assertEqual(len(engine.get_statistics().spin_history), 3)

    def test_stats_cannot_mutate_engine(self):
        engine = make_engine([MISS] * 3)
        for _ in range(3):
            engine.select_prize()
        stats = engine.get_statistics()
        stats.spin_history.clear()
        stats.base_probabilities[0] = 50
        stats.prize_counts[7] = 0
        again = engine.get_statistics()
        self.assertEqual(len(again.spin_history), 3)
        self.assertEqual(again.base_probabilities[0], 0.2)
        self.assertEqual(again.prize_counts[7], 3)

    def test_statistics_idempotent(self):
        engine = make_engine([MISS] * 31)
        for _ in range(31):
            engine.select_prize()
        self.assertEqual(engine.get_statistics(), engine.get_statistics())

    def test_stats_report_counts_and_revenue(self):
        engine = make_engine([MISS, MISS, MOET])
        for _ in range(3):
            engine.select_prize()
        stats = engine.get_statistics()
        self.assertEqual(stats.prize_counts, [1, 0, 0, 0, 0, 0, 0, 2])
        self.assertAlmostEqual(stats.total_revenue, 6.0)
        self.assertAlmostEqual(stats.expected_cost, 1.95, places=9)
        payload = stats.to_dict()
        self.assertEqual(len(payload["spin_history"]), 3)
        self.assertEqual(payload["spin_history"][0]["prize"]["name"], "Moët")

    def test_reset_restores_initial_state(self):
        engine = make_engine([MISS] * 35)
        for _ in range(35):
            engine.select_prize()
        engine.reset_state()
        engine.reset_state()   # idempotent

        stats = engine.get_statistics()
        self.assertEqual(stats.total_spins, 0)
        self.assertEqual(stats.spins_without_rare, 0)
        self.assertFalse(stats.is_pity_active)
        self.assertEqual(stats.spin_history, [])
        self.assertEqual(stats.prize_counts, [0] * 8)
        self.assertEqual(stats.current_probabilities, list(BASE_PROBABILITIES))

    def test_reset_keeps_configuration(self):
        engine = make_engine([MISS], cycle=True, pity={"threshold_spins": 4})
        engine.reset_state()
        self.assertEqual(engine.config.pity.threshold_spins, 4)


# ============================================================
# Expected cost
# ============================================================

class TestExpectedCost(unittest.TestCase):

    def test_base_expected_cost(self):
        """Catalog is tuned to ~1.95 € per spin."""
        engine = make_engine([MISS])
        self.assertAlmostEqual(engine.get_expected_cost(), 1.95, places=9)
        self.assertAlmostEqual(engine.expected_margin(), 0.05, places=9)

    def test_rare_probability_rises_when_boosted(self):
        engine = make_engine([MISS] * 30)
        self.assertAlmostEqual(engine.rare_probability(), 1.8, places=9)
        for _ in range(30):
            engine.select_prize()
        self.assertAlmostEqual(engine.rare_probability(), 3.6 / BOOSTED_TOTAL * 100, places=9)

    def test_expected_cost_has_no_side_effects(self):
        engine = make_engine([MISS])
        engine.get_expected_cost()
        self.assertEqual(engine.get_statistics().total_spins, 0)


# ============================================================
# Configuration validation
# ============================================================

class TestConfigValidation(unittest.TestCase):

    def test_default_config_is_valid(self):
        config = default_wheel_config()
        self.assertEqual(len(config.prizes), 8)
        self.assertEqual(config.pity.rare_indexes, frozenset({0, 1, 2}))
        self.assertEqual(config.pity.threshold_spins, 30)
        self.assertEqual(config.history_size, 10)
        self.assertEqual(validate_config(config), [])

    def test_probabilities_must_sum_to_100(self):
        with self.assertRaises(ValueError):
            default_wheel_config(base_probabilities=(0.2, 0.4, 1.2, 0.8, 1.5, 2.5, 5.0, 80.0))

    def test_table_length_must_match_catalog(self):
        with self.assertRaises(ValueError):
            default_wheel_config(base_probabilities=(0.6, 1.2, 0.8, 1.5, 2.5, 5.0, 88.4))

    def test_negative_probability_rejected(self):
        with self.assertRaises(ValueError):
            default_wheel_config(base_probabilities=(-1, 1.4, 1.2, 0.8, 1.5, 2.5, 5.0, 88.6))

    def test_rare_index_out_of_range(self):
        with self.assertRaises(ValueError):
            default_wheel_config(pity={"rare_indexes": [0, 8]})

    def test_threshold_must_be_positive(self):
        with self.assertRaises(ValueError):
            default_wheel_config(pity={"threshold_spins": 0})

    def test_multiplier_must_exceed_one(self):
        with self.assertRaises(ValueError):
            default_wheel_config(pity={"multiplier": 1.0})

    def test_empty_catalog_rejected(self):
        with self.assertRaises(ValueError):
            WheelConfig(prizes=(), base_probabilities=())

    def test_prize_ids_must_be_positional(self):
        prizes = [dict(p) for p in PRIZES]
        prizes[0]["id"], prizes[1]["id"] = 1, 0
        with self.assertRaises(ValueError):
            default_wheel_config(prizes=prizes)

    def test_config_is_immutable(self):
        config = default_wheel_config()
        with self.assertRaises(Exception):
            config.spin_price = 5.0

    def test_engine_rejects_source_without_random(self):
        with self.assertRaises(ValueError):
            PrizeEngine(default_wheel_config(), rng=object())

    def test_zero_history_size_from_env_rejected(self):
        with mock.patch.object(WheelSettings, "HISTORY_SIZE", 0):
            with self.assertRaises(ValueError):
                default_wheel_config()

    def test_history_size_from_env_applied(self):
        with mock.patch.object(WheelSettings, "HISTORY_SIZE", 3):
            self.assertEqual(default_wheel_config().history_size, 3)

    def test_warnings_for_losing_wheel(self):
        config = default_wheel_config(spin_price=1.0)
        self.assertTrue(any("exceeds spin price" in w for w in validate_config(config)))


# ============================================================
# Random sources
# ============================================================

class TestRandomSources(unittest.TestCase):

    def test_sequence_exhaustion(self):
        rng = SequenceRandomSource([0.1, 0.2])
        self.assertEqual([rng.random(), rng.random()], [0.1, 0.2])
        with self.assertRaises(IndexError):
            rng.random()

    def test_sequence_cycle(self):
        rng = SequenceRandomSource([0.1, 0.2], cycle=True)
        self.assertEqual([rng.random() for _ in range(5)], [0.1, 0.2, 0.1, 0.2, 0.1])

    def test_sequence_rejects_out_of_range(self):
        with self.assertRaises(ValueError):
            SequenceRandomSource([1.0])
        with self.assertRaises(ValueError):
            SequenceRandomSource([])

    def test_seeded_source_is_reproducible(self):
        a = make_random_source("seeded", seed=7)
        b = SystemRandomSource(7)
        self.assertEqual([a.random() for _ in range(5)], [b.random() for _ in range(5)])

    def test_unknown_source(self):
        with self.assertRaises(ValueError):
            make_random_source("dice")

    def test_provably_fair_draws_verify(self):
        rng = ProvablyFairSource(server_seed="server", client_seed="client")
        values = [rng.random() for _ in range(3)]
        self.assertTrue(all(0.0 <= v < 1.0 for v in values))
        self.assertEqual(rng.nonce, 3)
        for nonce, value in enumerate(values):
            self.assertTrue(ProvablyFairSource.verify("server", "client", nonce, value))
        self.assertFalse(ProvablyFairSource.verify("other", "client", 0, values[0]))

        revealed = rng.reveal()
        self.assertEqual(revealed["server_seed"], "server")
        self.assertEqual(len(revealed["draws"]), 3)

    def test_provably_fair_source_drives_engine(self):
        engine = PrizeEngine(default_wheel_config(),
                             rng=ProvablyFairSource(server_seed="s", client_seed="c"))
        for _ in range(50):
            engine.select_prize()
        self.assertEqual(engine.get_statistics().total_spins, 50)


if __name__ == "__main__":
    unittest.main()
