"""
Prize Wheel — Wheel API Routes

One engine per session, selected by the X-Session-Id header or the
`session` query arg. The registry lives in app.extensions["prize_wheel"] and
is installed by create_app(). Only POST /spin creates a session; the other
session routes answer 404 for a session that has never spun.
"""

import logging

from flask import current_app, jsonify, request

from api import wheel_bp
from config.settings import WheelSettings
from config.wheel_schema import validate_config
from sim_engine.prize.sessions import SessionRegistry

logger = logging.getLogger("prizewheel.api")

EXTENSION_KEY = "prize_wheel"


def get_registry() -> SessionRegistry:
    return current_app.extensions[EXTENSION_KEY]


def _session_id() -> str:
    return (request.headers.get("X-Session-Id")
            or request.args.get("session")
            or WheelSettings.DEFAULT_SESSION).strip()


def _existing_engine():
    return get_registry().lookup(_session_id())


@wheel_bp.errorhandler(ValueError)
def _bad_request(err):
    logger.warning(f"Rejected wheel request: {err}")
    return jsonify({"error": str(err)}), 400


@wheel_bp.errorhandler(KeyError)
def _unknown_session(err):
    return jsonify({"error": err.args[0] if err.args else "Unknown session"}), 404


# ═══════════════════════════════════════════════
# Engine calls
# ═══════════════════════════════════════════════

@wheel_bp.route("/spin", methods=["POST"])
def spin():
    result = get_registry().get(_session_id()).select_prize()
    return jsonify({"session": _session_id(), **result.to_dict()})


@wheel_bp.route("/stats", methods=["GET"])
def stats():
    return jsonify({"session": _session_id(), **_existing_engine().get_statistics().to_dict()})


@wheel_bp.route("/reset", methods=["POST"])
def reset():
    _existing_engine().reset_state()
    return jsonify({"session": _session_id(), "status": "reset"})


@wheel_bp.route("/expected-cost", methods=["GET"])
def expected_cost():
    engine = _existing_engine()
    snapshot = engine.get_statistics()
    return jsonify({
        "session": _session_id(),
        "expected_cost": round(snapshot.expected_cost, 6),
        "spin_price": engine.config.spin_price,
        "expected_margin": round(engine.config.spin_price - snapshot.expected_cost, 6),
        "is_pity_active": snapshot.is_pity_active,
    })


@wheel_bp.route("/session", methods=["DELETE"])
def drop_session():
    get_registry().drop(_session_id())
    return jsonify({"session": _session_id(), "status": "dropped"})


@wheel_bp.route("/catalog", methods=["GET"])
def catalog():
    config = get_registry().config
    return jsonify({
        "prizes": [p.model_dump() for p in config.prizes],
        "base_probabilities": list(config.base_probabilities),
        "pity": config.pity.model_dump(mode="json"),
        "spin_price": config.spin_price,
        "warnings": validate_config(config),
    })
