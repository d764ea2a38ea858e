import pytest

from cp_tracker import api_fetchers, config, pipeline
from cp_tracker.errors import UpstreamFetchFailure


def sub(contest_id, index, verdict="OK", rating=None, tags=(), name=None):
    problem = {"contestId": contest_id, "index": index, "name": name or f"{contest_id}{index}",
               "tags": list(tags)}
    if rating is not None:
        problem["rating"] = rating
    return {"verdict": verdict, "problem": problem}


class FakeCodeforces:
    """Stands in for cf_call; records every method invoked."""

    def __init__(self):
        self.users = {}
        self.ratings = {}
        self.submissions = {}
        self.problems = []
        self.failing = set()
        self.calls = []

    def add_user(self, handle, rating=None, submissions=(), ratings=(), rank="newbie"):
        user = {"handle": handle, "rank": rank, "titlePhoto": f"https://img/{handle}.png"}
        if rating is not None:
            user["rating"] = rating
            user["maxRating"] = rating
        self.users[handle] = user
        self.submissions[handle] = list(submissions)
        self.ratings[handle] = list(ratings)

    def __call__(self, method, params=None, timeout=None):
        params = params or {}
        self.calls.append((method, params.get("handle") or params.get("handles")))
        if method in self.failing:
            raise UpstreamFetchFailure(f"Codeforces {method} request failed")
        if method == "user.info":
            user = self.users.get(params["handles"])
            if user is None:
                return {"status": "FAILED", "comment": f"handles: User with handle {params['handles']} not found"}
            return {"status": "OK", "result": [user]}
        if method == "user.rating":
            return {"status": "OK", "result": self.ratings.get(params["handle"], [])}
        if method == "user.status":
            if params["handle"] not in self.users:
                return {"status": "FAILED", "comment": f"handle: User with handle {params['handle']} not found"}
            return {"status": "OK", "result": self.submissions[params["handle"]]}
        if method == "problemset.problems":
            return {"status": "OK", "result": {"problems": self.problems, "problemStatistics": []}}
        raise AssertionError(f"unexpected method {method}")

    def count(self, method=None):
        return len([c for c in self.calls if method is None or c[0] == method])


@pytest.fixture(autouse=True)
def clean_state(monkeypatch):
    for c in pipeline.ALL_CACHES:
        c.clear()
    monkeypatch.setattr(config, "OPENAI_API_KEY", "")
    yield
    for c in pipeline.ALL_CACHES:
        c.clear()


@pytest.fixture
def cf(monkeypatch):
    fake = FakeCodeforces()
    monkeypatch.setattr(api_fetchers, "cf_call", fake)
    return fake


class FakeClock:
    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()
