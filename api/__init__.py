"""
Prize Wheel — JSON API

Flask blueprint: /api/wheel/*
Thin HTTP surface over the per-session selection engines.
"""

from flask import Blueprint

wheel_bp = Blueprint("wheel", __name__, url_prefix="/api/wheel")

from api import wheel_routes  # noqa: E402, F401
