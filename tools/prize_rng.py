"""
Prize Wheel - Random Sources

Every draw the engine makes goes through an object with a `random()` method
returning a float in [0, 1). `random.Random` already satisfies that contract;
the classes here add a cryptographic source, a fixed-sequence source for
deterministic tests, and a provably fair source for audited venues.

Provably fair draws:
    Server generates server_seed and publishes SHA-256(server_seed).
    Client provides client_seed (or it's auto-generated).
    For each spin:
        combined = HMAC-SHA256(server_seed, client_seed + ":" + nonce)
        value    = int(combined[:8], 16) / 2^32
    After the session, server_seed is revealed and any draw can be re-derived.

Usage:
    from tools.prize_rng import make_random_source, SequenceRandomSource
    rng = make_random_source("seeded", seed=7)
    rng = SequenceRandomSource([0.5, 0.5, 0.0])
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import os
import random
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

logger = logging.getLogger("prizewheel.rng")


class RandomSource(ABC):
    """Uniform float source in [0, 1)."""

    name: str = "base"

    @abstractmethod
    def random(self) -> float:
        ...


class SystemRandomSource(RandomSource):
    """Mersenne Twister, optionally seeded for reproducible runs."""

    name = "system"

    def __init__(self, seed: int = None):
        self.seed = seed
        self._rng = random.Random(seed)

    def random(self) -> float:
        return self._rng.random()


class CryptoRandomSource(RandomSource):
    """OS entropy (os.urandom) via random.SystemRandom."""

    name = "crypto"

    def __init__(self):
        self._rng = random.SystemRandom()

    def random(self) -> float:
        return self._rng.random()


class SequenceRandomSource(RandomSource):
    """Replays a fixed list of values. Raises IndexError once exhausted
    unless `cycle` is set."""

    name = "sequence"

    def __init__(self, values, cycle: bool = False):
        values = [float(v) for v in values]
        if not values:
            raise ValueError("SequenceRandomSource needs at least one value")
        bad = [v for v in values if not 0.0 <= v < 1.0]
        if bad:
            raise ValueError(f"Sequence values must be in [0, 1), got {bad}")
        self._values = values
        self._cycle = cycle
        self._pos = 0

    def random(self) -> float:
        if self._pos >= len(self._values):
            if not self._cycle:
                raise IndexError(f"Random sequence exhausted after {len(self._values)} draws")
            self._pos = 0
        value = self._values[self._pos]
        self._pos += 1
        return value

    @property
    def remaining(self) -> int:
        return len(self._values) - self._pos


# ═══════════════════════════════════════════════════════════════
# Provably fair
# ═══════════════════════════════════════════════════════════════

@dataclass
class DrawRecord:
    """Audit trail entry for one provably fair draw."""
    nonce: int
    combined_hash: str
    value: float
    timestamp: float = 0

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = time.time()

    def to_dict(self) -> dict:
        return {
            "nonce": self.nonce,
            "combined_hash": self.combined_hash,
            "value": self.value,
            "timestamp": self.timestamp,
        }


@dataclass
class ProvablyFairSource(RandomSource):
    """HMAC-SHA256 draws from a committed server seed.

    The server seed stays secret until `reveal()`; players receive
    `server_seed_hash` up front and can verify every draw afterwards.
    """
    server_seed: str = ""
    client_seed: str = ""
    nonce: int = 0
    audit_trail: list = field(default_factory=list)
    name = "provably_fair"

    def __post_init__(self):
        if not self.server_seed:
            self.server_seed = os.urandom(32).hex()
        if not self.client_seed:
            self.client_seed = os.urandom(16).hex()

    @property
    def server_seed_hash(self) -> str:
        return hashlib.sha256(self.server_seed.encode()).hexdigest()

    @staticmethod
    def derive_hash(server_seed: str, client_seed: str, nonce: int) -> str:
        """Compute HMAC-SHA256(server_seed, client_seed:nonce)."""
        message = f"{client_seed}:{nonce}"
        return hmac.new(server_seed.encode(), message.encode(), hashlib.sha256).hexdigest()

    @staticmethod
    def hash_to_float(hex_hash: str) -> float:
        """Convert the first 8 hex characters to a float in [0, 1)."""
        return int(hex_hash[:8], 16) / 0x100000000  # 2^32

    def random(self) -> float:
        combined = self.derive_hash(self.server_seed, self.client_seed, self.nonce)
        value = self.hash_to_float(combined)
        self.audit_trail.append(DrawRecord(nonce=self.nonce, combined_hash=combined, value=value))
        self.nonce += 1
        return value

    def reveal(self) -> dict:
        """Publish the seeds so every recorded draw can be checked."""
        logger.info(f"Revealing server seed after {self.nonce} draws")
        return {
            "server_seed": self.server_seed,
            "server_seed_hash": self.server_seed_hash,
            "client_seed": self.client_seed,
            "draws": [d.to_dict() for d in self.audit_trail],
        }

    @classmethod
    def verify(cls, server_seed: str, client_seed: str, nonce: int, value: float) -> bool:
        """Re-derive a draw and compare it with the reported value."""
        expected = cls.hash_to_float(cls.derive_hash(server_seed, client_seed, nonce))
        return expected == value


# ═══════════════════════════════════════════════════════════════
# Factory
# ═══════════════════════════════════════════════════════════════

RANDOM_SOURCES = {
    "system": SystemRandomSource,
    "seeded": SystemRandomSource,
    "crypto": CryptoRandomSource,
    "provably_fair": ProvablyFairSource,
}


def make_random_source(kind: str = None, seed: int = None) -> RandomSource:
    """Build the configured random source (RNG_SOURCE / RNG_SEED by default)."""
    from config.settings import WheelSettings

    kind = (kind or WheelSettings.RNG_SOURCE).lower()
    if kind not in RANDOM_SOURCES:
        raise ValueError(f"Unknown RNG source: {kind}. Available: {list(RANDOM_SOURCES)}")

    if kind == "seeded":
        return SystemRandomSource(seed if seed is not None else WheelSettings.RNG_SEED)
    if kind == "system":
        return SystemRandomSource(seed)
    return RANDOM_SOURCES[kind]()
