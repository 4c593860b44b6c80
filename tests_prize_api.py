#!/usr/bin/env python3
"""
Tests for the wheel JSON API (/api/wheel/*)

Validates:
1.  POST /spin returns the prize plus spin metadata
2.  GET /stats reflects spins for the calling session only
3.  POST /reset clears the calling session
4.  GET /expected-cost follows the pity boost
5.  GET /catalog exposes the configured wheel
6.  create_app() installs one shared registry before any request
7.  Only POST /spin creates sessions; DELETE /session drops them
"""

import sys
import threading
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

import pytest

from config.wheel_schema import default_wheel_config
from sim_engine.prize import SessionRegistry
from tools.prize_rng import SequenceRandomSource


@pytest.fixture
def client():
    from web_app import create_app
    registry = SessionRegistry(default_wheel_config(),
                               rng_factory=lambda: SequenceRandomSource([0.5], cycle=True))
    app = create_app(registry)
    app.config["TESTING"] = True
    return app.test_client()


def _spin(client, session="t1", times=1):
    resp = None
    for _ in range(times):
        resp = client.post("/api/wheel/spin", headers={"X-Session-Id": session})
    return resp


def test_spin_returns_prize_and_metadata(client):
    resp = _spin(client)
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["name"] == "Miss"
    assert data["id"] == 7
    assert data["spin_id"].startswith("spin_")
    assert data["was_pity_active"] is False
    assert data["session"] == "t1"


def test_stats_are_per_session(client):
    _spin(client, "t1", times=3)
    _spin(client, "t2", times=1)

    t1 = client.get("/api/wheel/stats", headers={"X-Session-Id": "t1"}).get_json()
    t2 = client.get("/api/wheel/stats?session=t2").get_json()
    assert t1["total_spins"] == 3
    assert t1["spins_without_rare"] == 3
    assert len(t1["spin_history"]) == 3
    assert t2["total_spins"] == 1
    assert t1["total_revenue"] == 6.0


def test_reset_clears_session(client):
    _spin(client, "t1", times=5)
    resp = client.post("/api/wheel/reset", headers={"X-Session-Id": "t1"})
    assert resp.get_json()["status"] == "reset"
    stats = client.get("/api/wheel/stats", headers={"X-Session-Id": "t1"}).get_json()
    assert stats["total_spins"] == 0
    assert stats["spin_history"] == []


def test_expected_cost_follows_pity(client):
    _spin(client, "t1")
    base = client.get("/api/wheel/expected-cost", headers={"X-Session-Id": "t1"}).get_json()
    assert base["expected_cost"] == pytest.approx(1.95)
    assert base["is_pity_active"] is False

    _spin(client, "t1", times=29)
    boosted = client.get("/api/wheel/expected-cost", headers={"X-Session-Id": "t1"}).get_json()
    assert boosted["is_pity_active"] is True
    assert boosted["expected_cost"] == pytest.approx(277 / 101.8, abs=1e-6)
    assert boosted["expected_margin"] < 0
    assert boosted["expected_margin"] == pytest.approx(boosted["spin_price"] - boosted["expected_cost"], abs=1e-5)


def test_catalog(client):
    data = client.get("/api/wheel/catalog").get_json()
    assert [p["name"] for p in data["prizes"]][:2] == ["Moët", "Bottiglia Premium"]
    assert sum(data["base_probabilities"]) == pytest.approx(100.0)
    assert sorted(data["pity"]["rare_indexes"]) == [0, 1, 2]
    assert data["warnings"] == []


def test_health(client):
    assert client.get("/health").get_json()["status"] == "ok"


def _registry_of(client):
    from api.wheel_routes import EXTENSION_KEY
    return client.application.extensions[EXTENSION_KEY]


def test_create_app_installs_registry_up_front():
    from api.wheel_routes import EXTENSION_KEY
    from web_app import create_app
    app_a, app_b = create_app(), create_app()
    assert isinstance(app_a.extensions[EXTENSION_KEY], SessionRegistry)
    assert app_a.extensions[EXTENSION_KEY] is not app_b.extensions[EXTENSION_KEY]


def test_concurrent_first_spins_share_one_session():
    from web_app import create_app
    app = create_app()
    app.config["TESTING"] = True
    barrier = threading.Barrier(4)

    def worker():
        barrier.wait()
        app.test_client().post("/api/wheel/spin", headers={"X-Session-Id": "s"})

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    stats = app.test_client().get("/api/wheel/stats", headers={"X-Session-Id": "s"}).get_json()
    assert stats["total_spins"] == 4


def test_read_routes_do_not_create_sessions(client):
    for i in range(50):
        headers = {"X-Session-Id": f"ghost-{i}"}
        assert client.get("/api/wheel/stats", headers=headers).status_code == 404
        assert client.get("/api/wheel/expected-cost", headers=headers).status_code == 404
        assert client.post("/api/wheel/reset", headers=headers).status_code == 404
    assert len(_registry_of(client)) == 0

    resp = client.get("/api/wheel/stats", headers={"X-Session-Id": "ghost-0"})
    assert resp.get_json()["error"] == "Unknown session: ghost-0"


def test_delete_session(client):
    _spin(client, "t1", times=2)
    resp = client.delete("/api/wheel/session", headers={"X-Session-Id": "t1"})
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "dropped"
    assert "t1" not in _registry_of(client)
    assert client.get("/api/wheel/stats", headers={"X-Session-Id": "t1"}).status_code == 404
    assert client.delete("/api/wheel/session", headers={"X-Session-Id": "t1"}).status_code == 404
