"""Per-session engines: every game table gets its own isolated PrizeEngine."""

import logging
import threading
from collections import OrderedDict
from typing import Callable, Optional

from config.wheel_schema import WheelConfig, default_wheel_config
from sim_engine.prize.engine import PrizeEngine

logger = logging.getLogger("prizewheel.sessions")


class SessionRegistry:
    """Creates engines on first use and keeps them apart.

    All sessions share the same immutable WheelConfig; state and random
    source are per session. At most `max_sessions` engines are kept; creating
    one more evicts the least recently used session.
    """

    def __init__(self, config: Optional[WheelConfig] = None,
                 rng_factory: Optional[Callable] = None,
                 max_sessions: Optional[int] = None):
        self.config = config or default_wheel_config()
        if rng_factory is None:
            from tools.prize_rng import make_random_source
            rng_factory = make_random_source
        if max_sessions is None:
            from config.settings import WheelSettings
            max_sessions = WheelSettings.MAX_SESSIONS
        if max_sessions <= 0:
            raise ValueError(f"max_sessions must be positive, got {max_sessions}")
        self.max_sessions = max_sessions
        self._rng_factory = rng_factory
        self._engines: OrderedDict[str, PrizeEngine] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, session_id: str) -> PrizeEngine:
        """Engine for the session, created on first use."""
        if not session_id:
            raise ValueError("session_id must be a non-empty string")
        evicted = None
        with self._lock:
            engine = self._engines.get(session_id)
            if engine is not None:
                self._engines.move_to_end(session_id)
                return engine
            engine = PrizeEngine(self.config, rng=self._rng_factory())
            self._engines[session_id] = engine
            if len(self._engines) > self.max_sessions:
                evicted, _ = self._engines.popitem(last=False)
        logger.info(f"Created engine for session {session_id}")
        if evicted is not None:
            logger.warning(f"Session limit {self.max_sessions} reached; evicted {evicted}")
        return engine

    def lookup(self, session_id: str) -> PrizeEngine:
        """Engine for an existing session. Raises KeyError, never creates."""
        with self._lock:
            engine = self._engines.get(session_id)
            if engine is None:
                raise KeyError(f"Unknown session: {session_id}")
            self._engines.move_to_end(session_id)
            return engine

    def drop(self, session_id: str) -> None:
        with self._lock:
            if session_id not in self._engines:
                raise KeyError(f"Unknown session: {session_id}")
            del self._engines[session_id]
        logger.info(f"Dropped session {session_id}")

    def reset_all(self) -> int:
        """Daily reset: clear the state of every live session."""
        with self._lock:
            engines = list(self._engines.values())
        for engine in engines:
            engine.reset_state()
        logger.info(f"Reset {len(engines)} session(s)")
        return len(engines)

    def session_ids(self) -> list:
        with self._lock:
            return sorted(self._engines)

    def __contains__(self, session_id) -> bool:
        with self._lock:
            return session_id in self._engines

    def __len__(self) -> int:
        with self._lock:
            return len(self._engines)
