"""
Prize Wheel — Party Edition
HTTP entrypoint for the wheel UI: serves the selection engine's JSON API.
"""
import logging

from dotenv import load_dotenv
load_dotenv()

from config.settings import WheelSettings

# ── Structured logging ──
logging.basicConfig(
    level=getattr(logging, WheelSettings.LOG_LEVEL, logging.INFO),
    format=WheelSettings.LOG_FORMAT,
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("prizewheel")

from flask import Flask, jsonify


def create_app(registry=None) -> Flask:
    """Build the Flask app; tests pass their own SessionRegistry."""
    from api import wheel_bp
    from api.wheel_routes import EXTENSION_KEY
    from sim_engine.prize.sessions import SessionRegistry

    app = Flask(__name__)
    app.extensions[EXTENSION_KEY] = registry if registry is not None else SessionRegistry()
    app.register_blueprint(wheel_bp)
    logger.info("Registered wheel blueprint at /api/wheel/")

    @app.route("/health")
    def health():
        return jsonify({"status": "ok", "rng_source": WheelSettings.RNG_SOURCE})

    return app


app = create_app()


if __name__ == "__main__":
    import os
    app.run(host="0.0.0.0", port=int(os.getenv("PORT", "5000")))
