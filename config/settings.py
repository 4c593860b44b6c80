"""
Prize Wheel - Runtime Settings

Every knob the engine and its entrypoints read at boot. Values come from the
environment (a local .env file is honoured). Wheel tuning overrides are None
when unset, in which case the catalog defaults in sim_engine.prize.catalog
apply, so an empty environment reproduces the shipped wheel.

    RNG_SOURCE            system | seeded | crypto | provably_fair
    RNG_SEED              seed for the "seeded" source
    PITY_ENABLED          1/0
    PITY_THRESHOLD_SPINS  non-rare spins before the rare boost kicks in
    PITY_MULTIPLIER       boost applied to rare prize probabilities
    PITY_RESET_ON_WIN     1/0
    HISTORY_SIZE          outcomes kept in the rolling history
    SPIN_PRICE            price charged per spin (revenue reporting only)
    MAX_SESSIONS          live session engines kept before the least recently used is evicted
"""

import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).parent.parent


def _env_bool(name: str, default=None):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default=None):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def _env_float(name: str, default=None):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


class WheelSettings:

    # --- Logging ---
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
    LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

    # --- Randomness ---
    RNG_SOURCE = os.getenv("RNG_SOURCE", "system").lower()
    RNG_SEED = _env_int("RNG_SEED")

    # --- Pity system ---
    PITY_ENABLED = _env_bool("PITY_ENABLED")
    PITY_THRESHOLD_SPINS = _env_int("PITY_THRESHOLD_SPINS")
    PITY_MULTIPLIER = _env_float("PITY_MULTIPLIER")
    PITY_RESET_ON_WIN = _env_bool("PITY_RESET_ON_WIN")

    # --- Engine state ---
    HISTORY_SIZE = _env_int("HISTORY_SIZE")

    # --- Reporting ---
    SPIN_PRICE = _env_float("SPIN_PRICE")          # € per spin
    SIM_ROUNDS = _env_int("SIM_ROUNDS", 100_000)
    SIM_SEED = _env_int("SIM_SEED", 42)

    # --- Sessions ---
    DEFAULT_SESSION = os.getenv("DEFAULT_SESSION", "default")
    MAX_SESSIONS = _env_int("MAX_SESSIONS", 1000)

    @classmethod
    def as_dict(cls) -> dict:
        """Snapshot of the effective settings (for CLI dumps and logs)."""
        return {
            "log_level": cls.LOG_LEVEL,
            "rng_source": cls.RNG_SOURCE,
            "rng_seed": cls.RNG_SEED,
            "pity_enabled": cls.PITY_ENABLED,
            "pity_threshold_spins": cls.PITY_THRESHOLD_SPINS,
            "pity_multiplier": cls.PITY_MULTIPLIER,
            "pity_reset_on_win": cls.PITY_RESET_ON_WIN,
            "history_size": cls.HISTORY_SIZE,
            "spin_price": cls.SPIN_PRICE,
            "sim_rounds": cls.SIM_ROUNDS,
            "sim_seed": cls.SIM_SEED,
            "max_sessions": cls.MAX_SESSIONS,
        }
