# api_fetchers.py
"""
Judge API fetchers.
- Codeforces JSON API (user.info, user.rating, user.status, problemset.problems)
- LeetCode GraphQL
- AtCoder (kenkoooo mirror) and CodeChef (JSON API with profile-page fallback)

Every call has an explicit timeout. Transport problems raise
UpstreamFetchFailure; a judge saying the handle does not exist raises NotFound.
"""
import logging
import re
from typing import Any, Dict, List

import requests
from bs4 import BeautifulSoup

from . import config
from .errors import NotFound, UpstreamFetchFailure, ValidationFailure

logger = logging.getLogger(__name__)

# ---------------------------------------------------
# Codeforces
# ---------------------------------------------------

def cf_call(method: str, params: Dict = None, timeout: float = None) -> Dict:
    """Call a Codeforces API method and return its JSON envelope.

    Codeforces answers unknown handles with HTTP 400 and a FAILED envelope,
    so the envelope is returned for any status code that carries one. Rate
    limiting (HTTP 429/503, "Call limit exceeded") is never returned as a
    FAILED envelope; it raises like any other transport failure.
    """
    url = f"{config.CF_API_BASE}/{method}"
    try:
        r = requests.get(url, params=params, headers=config.HEADERS,
                         timeout=timeout or config.REQUEST_TIMEOUT)
    except requests.RequestException as e:
        logger.warning("Codeforces %s failed: %s", method, e)
        raise UpstreamFetchFailure(f"Codeforces {method} request failed") from e

    try:
        j = r.json()
    except ValueError:
        j = None

    if not isinstance(j, dict) or "status" not in j:
        logger.warning("Codeforces %s returned HTTP %s without an envelope", method, r.status_code)
        raise UpstreamFetchFailure(f"Codeforces {method} returned HTTP {r.status_code}")

    comment = j.get("comment") or ""
    if r.status_code == 429 or r.status_code >= 500 or "limit exceeded" in comment.lower():
        logger.warning("Codeforces %s throttled or unavailable: %s", method, comment or r.status_code)
        raise UpstreamFetchFailure(f"Codeforces {method} unavailable: {comment or r.status_code}")
    return j


def fetch_cf_user_info(handle: str) -> Dict:
    j = cf_call("user.info", {"handles": handle})
    if j.get("status") != "OK" or not j.get("result"):
        raise NotFound(f"Handle not found: {handle}")
    return j["result"][0]


def fetch_cf_rating_history(handle: str) -> List[Dict]:
    j = cf_call("user.rating", {"handle": handle})
    if j.get("status") != "OK":
        raise UpstreamFetchFailure(f"Rating history unavailable for {handle}")
    return j.get("result") or []


def fetch_cf_submissions(handle: str, count: int = None) -> List[Dict]:
    j = cf_call(
        "user.status",
        {"handle": handle, "from": 1, "count": count or config.SUBMISSION_FETCH_COUNT},
        timeout=config.SUBMISSIONS_TIMEOUT,
    )
    if j.get("status") != "OK":
        if "not found" in (j.get("comment") or "").lower():
            raise NotFound(f"Handle not found: {handle}")
        raise UpstreamFetchFailure(f"Failed to fetch submissions for {handle}")
    return j.get("result") or []


def fetch_cf_problemset() -> List[Dict]:
    j = cf_call("problemset.problems", timeout=config.SUBMISSIONS_TIMEOUT)
    if j.get("status") != "OK":
        raise UpstreamFetchFailure("Failed to fetch problemset")
    return (j.get("result") or {}).get("problems") or []

# ---------------------------------------------------
# LeetCode
# ---------------------------------------------------

PROFILE_QUERY = """
query userProfile($username: String!) {
    matchedUser(username: $username) {
        username
        profile {
            ranking
            reputation
            starRating
            userAvatar
            countryName
        }
        submitStats {
            acSubmissionNum { difficulty count }
            totalSubmissionNum { difficulty count }
        }
        tagProblemCounts {
            advanced { tagName tagSlug problemsSolved }
            intermediate { tagName tagSlug problemsSolved }
            fundamental { tagName tagSlug problemsSolved }
        }
    }
    userContestRanking(username: $username) {
        attendedContestsCount
        rating
        globalRanking
        topPercentage
    }
    recentAcSubmissionList(username: $username, limit: 15) {
        title
        titleSlug
        timestamp
        lang
    }
}
"""

SOLVED_QUERY = """
query userProfile($username: String!) {
    matchedUser(username: $username) {
        submitStats {
            acSubmissionNum { difficulty count }
        }
    }
}
"""


def leetcode_graphql(query: str, username: str) -> Dict:
    headers = {
        **config.HEADERS,
        "Content-Type": "application/json",
        "Origin": "https://leetcode.com",
        "Referer": "https://leetcode.com",
    }
    try:
        r = requests.post(
            config.LEETCODE_GRAPHQL_URL,
            json={"query": query, "variables": {"username": username}},
            headers=headers,
            timeout=config.REQUEST_TIMEOUT,
        )
    except requests.RequestException as e:
        logger.warning("LeetCode GraphQL failed for %s: %s", username, e)
        raise UpstreamFetchFailure("Failed to fetch from LeetCode") from e
    if not r.ok:
        raise UpstreamFetchFailure(f"LeetCode API error (HTTP {r.status_code})", status_code=r.status_code)
    try:
        j = r.json()
    except ValueError as e:
        raise UpstreamFetchFailure("LeetCode returned malformed JSON") from e

    if j.get("errors"):
        raise ValidationFailure(j["errors"][0].get("message") or "GraphQL error")
    data = j.get("data") or {}
    if not data.get("matchedUser"):
        raise NotFound("User not found")
    return data


def fetch_leetcode_profile(username: str) -> Dict:
    return leetcode_graphql(PROFILE_QUERY, username)


def ac_counts(matched_user: Dict, field: str = "acSubmissionNum") -> Dict[str, int]:
    rows = ((matched_user.get("submitStats") or {}).get(field)) or []
    return {row.get("difficulty"): row.get("count") or 0 for row in rows}


def fetch_leetcode_solved(username: str) -> int:
    data = leetcode_graphql(SOLVED_QUERY, username)
    return ac_counts(data["matchedUser"]).get("All", 0)

# ---------------------------------------------------
# AtCoder / CodeChef
# ---------------------------------------------------

def fetch_atcoder_solved(user: str) -> int:
    try:
        r = requests.get(
            config.ATCODER_AC_RANK_URL,
            params={"user": user},
            headers={"User-Agent": "CPTracker/1.0"},
            timeout=config.REQUEST_TIMEOUT,
        )
    except requests.RequestException as e:
        raise UpstreamFetchFailure("AtCoder request failed") from e
    if r.status_code == 404:
        raise NotFound("Handle not found")
    if not r.ok:
        raise UpstreamFetchFailure(f"AtCoder API error (HTTP {r.status_code})")
    try:
        count = r.json().get("count")
    except ValueError as e:
        raise UpstreamFetchFailure("AtCoder returned malformed JSON") from e
    if count is None:
        raise UpstreamFetchFailure("No data returned")
    return int(count)


def _scrape_codechef_solved(handle: str):
    """Read "Total Problems Solved: N" off the public profile page."""
    r = requests.get(f"{config.CODECHEF_PROFILE_URL}/{handle}", headers=config.HEADERS,
                     timeout=config.REQUEST_TIMEOUT)
    r.raise_for_status()
    soup = BeautifulSoup(r.text, "html.parser")
    for pattern in (r"Total Problems Solved", r"Problems Solved", r"Fully Solved"):
        label = soup.find(string=re.compile(pattern, re.I))
        if not label:
            continue
        text = label.parent.get_text(" ", strip=True) if label.parent else str(label)
        numbers = re.findall(r"\d+", text)
        if numbers:
            return int(numbers[0])
    return None


def fetch_codechef_solved(handle: str) -> int:
    try:
        r = requests.get(f"{config.CODECHEF_API_URL}/{handle}", headers=config.HEADERS,
                         timeout=config.REQUEST_TIMEOUT)
    except requests.RequestException as e:
        raise UpstreamFetchFailure("CodeChef request failed") from e
    if not r.ok:
        raise NotFound("Handle not found")
    try:
        j: Dict[str, Any] = r.json()
    except ValueError as e:
        raise UpstreamFetchFailure("CodeChef returned malformed JSON") from e
    if j.get("status") != "OK":
        raise NotFound("Handle not found")

    solved = (j.get("fully_solved") or {}).get("count")
    if solved is None:
        solved = (j.get("content") or {}).get("programSolvedCount")
    if solved is not None:
        return int(solved)

    try:
        solved = _scrape_codechef_solved(handle)
    except requests.RequestException as e:
        raise UpstreamFetchFailure("CodeChef profile page failed") from e
    if solved is None:
        raise UpstreamFetchFailure("Solved count unavailable")
    return solved
