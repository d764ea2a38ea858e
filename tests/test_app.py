from collections import deque

import pytest
import requests
from fastapi.testclient import TestClient

from cp_tracker import app as app_module
from cp_tracker import api_fetchers, config, pipeline
from cp_tracker.errors import NotFound
from conftest import sub


@pytest.fixture
def client():
    app_module._rate_buckets.clear()
    return TestClient(app_module.app)


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_codeforces_requires_handle(client, cf):
    r = client.get("/v1/codeforces", params={"handle": "  "})
    assert r.status_code == 400
    assert r.json() == {"error": "Handle is required"}
    assert cf.count() == 0


def test_codeforces_unknown_handle(client, cf):
    r = client.get("/v1/codeforces", params={"handle": "bob"})
    assert r.status_code == 404
    assert "not found" in r.json()["error"].lower()


def test_codeforces_profile_tolerates_missing_submissions(client, cf):
    cf.add_user("carol", rating=1500, rank="specialist")
    cf.failing.add("user.status")
    r = client.get("/v1/codeforces", params={"handle": "carol"})
    assert r.status_code == 200
    body = r.json()
    assert body["totalSolved"] == 0
    assert body["tagCounts"] == {}
    assert body["info"]["rank"] == "Specialist"


def test_codeforces_profile(client, cf):
    cf.add_user("alice", submissions=[sub(100, "A", rating=900, tags=["dp"]),
                                      sub(100, "B", rating=1100, tags=["dp", "greedy"])])
    body = client.get("/v1/codeforces", params={"handle": "alice"}).json()
    assert body["totalSolved"] == 2
    assert body["ratingBuckets"]["801–1000"] == 1


def test_compare(client, cf):
    cf.add_user("alice", submissions=[sub(1, "A")])
    cf.add_user("bob")
    assert client.get("/v1/codeforces/compare", params={"h1": "alice"}).status_code == 400
    r = client.get("/v1/codeforces/compare", params={"h1": "alice", "h2": "bob"})
    assert r.status_code == 200
    assert r.json()["a"]["totalSolved"] == 1
    assert r.json()["b"]["totalSolved"] == 0


def test_coach_upstream_failure_is_500(client, cf):
    cf.add_user("carol", rating=1500)
    cf.failing.add("user.status")
    r = client.post("/v1/codeforces/coach", json={"handle": "carol"})
    assert r.status_code == 500
    assert "user.status" in r.json()["error"]


def test_coach_requires_handle(client, cf):
    r = client.post("/v1/codeforces/coach", json={})
    assert r.status_code == 400


def test_sheet(client, cf):
    cf.problems = [{"contestId": 4, "index": "A", "name": "Watermelon", "rating": 800, "tags": []}]
    r = client.post("/v1/codeforces/sheet", json={"handle": "ghost", "ladderId": "div2a"})
    assert r.status_code == 200
    assert r.json()["problems"][0]["solved"] is False


def test_leetcode_not_found(client, monkeypatch):
    def missing(username):
        raise NotFound("User not found")

    monkeypatch.setattr(api_fetchers, "fetch_leetcode_profile", missing)
    r = client.get("/v1/leetcode", params={"username": "ghost"})
    assert r.status_code == 404
    assert r.json() == {"error": "User not found"}
    assert client.get("/v1/leetcode").status_code == 400


def test_leetcode_upstream_status_passed_through(client, monkeypatch):
    class Throttled:
        status_code = 429
        ok = False

    monkeypatch.setattr(requests, "post", lambda *args, **kwargs: Throttled())
    r = client.get("/v1/leetcode", params={"username": "neal"})
    assert r.status_code == 429
    assert "429" in r.json()["error"]


def test_stats_validation_and_rate_limit(client, monkeypatch):
    monkeypatch.setattr(config, "RATE_LIMIT", 3)
    monkeypatch.setitem(pipeline.PLATFORM_FETCHERS, "atcoder", lambda h: 10)

    assert client.get("/v1/stats").status_code == 400
    r = client.get("/v1/stats", params={"at": "chokudai"})
    assert r.status_code == 200
    assert r.json()["total"] == 10
    assert client.get("/v1/stats", params={"at": "chokudai"}).status_code == 200
    r = client.get("/v1/stats", params={"at": "chokudai"})
    assert r.status_code == 429
    assert "Rate limit" in r.json()["error"]


def test_forwarded_header_ignored_by_default(client, monkeypatch):
    monkeypatch.setattr(config, "RATE_LIMIT", 1)
    monkeypatch.setitem(pipeline.PLATFORM_FETCHERS, "atcoder", lambda h: 1)
    assert client.get("/v1/stats", params={"at": "x"}, headers={"x-forwarded-for": "1.1.1.1"}).status_code == 200
    assert client.get("/v1/stats", params={"at": "x"}, headers={"x-forwarded-for": "3.3.3.3"}).status_code == 429
    assert list(app_module._rate_buckets) == ["testclient"]


def test_idle_rate_buckets_pruned(client, monkeypatch):
    monkeypatch.setitem(pipeline.PLATFORM_FETCHERS, "atcoder", lambda h: 1)
    app_module._rate_buckets["9.9.9.9"] = deque([0.0])
    app_module._rate_buckets["8.8.8.8"] = deque()
    assert client.get("/v1/stats", params={"at": "x"}).status_code == 200
    assert "9.9.9.9" not in app_module._rate_buckets
    assert "8.8.8.8" not in app_module._rate_buckets


def test_rate_limit_is_per_forwarded_ip(client, monkeypatch):
    monkeypatch.setattr(config, "TRUST_FORWARDED_FOR", True)
    monkeypatch.setattr(config, "RATE_LIMIT", 1)
    monkeypatch.setitem(pipeline.PLATFORM_FETCHERS, "atcoder", lambda h: 1)
    assert client.get("/v1/stats", params={"at": "x"}, headers={"x-forwarded-for": "1.1.1.1"}).status_code == 200
    assert client.get("/v1/stats", params={"at": "x"}, headers={"x-forwarded-for": "1.1.1.1"}).status_code == 429
    assert client.get("/v1/stats", params={"at": "x"}, headers={"x-forwarded-for": "2.2.2.2, 10.0.0.1"}).status_code == 200


def test_clear_cache(client, cf):
    cf.add_user("dave", submissions=[sub(1, "A")])
    client.get("/v1/codeforces", params={"handle": "dave"})
    assert client.post("/admin/clear_cache").json() == {"cache": "cleared"}
    client.get("/v1/codeforces", params={"handle": "dave"})
    assert cf.count("user.info") == 2
