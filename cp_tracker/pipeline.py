"""
Cached aggregation over the judge fetchers.

Independent upstream reads are issued concurrently on a per-call thread pool.
Results are memoized in process-wide TTL caches; every function also accepts
an explicit cache so tests and other deployments can swap it out.
"""
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional

from . import api_fetchers, config
from .aggregate import count_solved, summarize_submissions
from .cache import TTLCache, cache_key
from .errors import NotFound, TrackerError, UpstreamFetchFailure, ValidationFailure

logger = logging.getLogger(__name__)

AGGREGATE_FIELDS = ("info", "ratingBuckets", "tagCounts", "tagProblems", "solvedKeys")

profile_cache = TTLCache(config.AGGREGATE_TTL, config.AGGREGATE_SCHEMA_VERSION,
                         required_fields=AGGREGATE_FIELDS)
problemset_cache = TTLCache(config.PROBLEMSET_TTL)
ladder_problemset_cache = TTLCache(config.LADDER_PROBLEMSET_TTL)
leetcode_cache = TTLCache(config.LEETCODE_TTL)
stats_cache = TTLCache(config.STATS_TTL)

ALL_CACHES = [profile_cache, problemset_cache, ladder_problemset_cache, leetcode_cache, stats_cache]


def normalize_handle(handle: Optional[str], message: str = "Handle is required") -> str:
    h = (handle or "").strip()
    if not h:
        raise ValidationFailure(message)
    return h


def _profile_info(info: Dict) -> Dict:
    rank = info.get("rank")
    return {
        "handle": info.get("handle"),
        "rating": info.get("rating") or 0,
        "maxRating": info.get("maxRating") or 0,
        "rank": rank[:1].upper() + rank[1:] if rank else "Unrated",
        "avatar": info.get("titlePhoto") or "",
    }

# ---------------------------------------------------
# Codeforces aggregate
# ---------------------------------------------------

def aggregate(handle: str, strict: bool = True, cache=None) -> Dict:
    """Profile, solved count, tag and rating-bucket breakdown for one handle.

    `strict` decides what a failed submission fetch means: an error when the
    caller needs an accurate solved count, zero known submissions otherwise.
    A rating-history failure is always absorbed. Results built from absorbed
    failures are returned but not cached.
    """
    cache = profile_cache if cache is None else cache
    handle = normalize_handle(handle)
    key = cache_key(handle)

    cached = cache.get(key)
    if cached is not None:
        return cached

    executor = ThreadPoolExecutor(max_workers=3)
    try:
        info_f = executor.submit(api_fetchers.fetch_cf_user_info, handle)
        rating_f = executor.submit(api_fetchers.fetch_cf_rating_history, handle)
        subs_f = executor.submit(api_fetchers.fetch_cf_submissions, handle)

        try:
            info = info_f.result()
        except TrackerError:
            rating_f.cancel()
            subs_f.cancel()
            raise

        degraded = False
        try:
            rating_history = rating_f.result()
        except UpstreamFetchFailure:
            logger.warning("rating history unavailable for %s, continuing without it", handle)
            rating_history = []
            degraded = True

        try:
            submissions = subs_f.result()
        except UpstreamFetchFailure:
            if strict:
                raise
            logger.warning("submissions unavailable for %s, reporting zero solved", handle)
            submissions = []
            degraded = True
    finally:
        executor.shutdown(wait=False)

    result = {
        "info": _profile_info(info),
        "ratingHistory": rating_history,
        **summarize_submissions(submissions),
        "contestCount": len(rating_history),
    }
    if not degraded:
        cache.set(key, result)
    return result


def aggregate_strict(handle: str, cache=None) -> Dict:
    return aggregate(handle, strict=True, cache=cache)


def aggregate_best_effort(handle: str, cache=None) -> Dict:
    return aggregate(handle, strict=False, cache=cache)


def compare(h1: Optional[str], h2: Optional[str], cache=None) -> Dict:
    h1 = normalize_handle(h1, "Both handles required")
    h2 = normalize_handle(h2, "Both handles required")
    with ThreadPoolExecutor(max_workers=2) as executor:
        a_f = executor.submit(aggregate_strict, h1, cache)
        b_f = executor.submit(aggregate_strict, h2, cache)
        return {"a": a_f.result(), "b": b_f.result()}

# ---------------------------------------------------
# Problemset catalog
# ---------------------------------------------------

def problemset(cache=None) -> List[Dict]:
    """Global catalog. A failed refresh keeps serving the last good copy."""
    cache = problemset_cache if cache is None else cache
    problems = cache.get("problemset")
    if problems is not None:
        return problems
    try:
        problems = api_fetchers.fetch_cf_problemset()
    except UpstreamFetchFailure:
        stale = cache.get_stale("problemset")
        if stale is None:
            raise
        logger.warning("problemset refresh failed, serving stale catalog")
        return stale
    cache.set("problemset", problems)
    return problems


def solved_keys_best_effort(handle: Optional[str]) -> set:
    """Solved ProblemKeys for check marks; empty when the handle cannot be read."""
    h = (handle or "").strip()
    if not h:
        return set()
    try:
        return set(aggregate_best_effort(h)["solvedKeys"])
    except TrackerError as e:
        logger.info("no solved set for %s: %s", h, e)
        return set()

# ---------------------------------------------------
# LeetCode
# ---------------------------------------------------

def leetcode_profile(username: Optional[str], cache=None) -> Dict:
    cache = leetcode_cache if cache is None else cache
    username = normalize_handle(username, "Username required")
    data = cache.get(username)
    if data is None:
        data = api_fetchers.fetch_leetcode_profile(username)
        cache.set(username, data)
    return data

# ---------------------------------------------------
# Multi-platform solved totals
# ---------------------------------------------------

def _cf_solved(handle: str) -> int:
    return count_solved(api_fetchers.fetch_cf_submissions(handle, count=100000))


PLATFORM_FETCHERS = {
    "codeforces": _cf_solved,
    "leetcode": api_fetchers.fetch_leetcode_solved,
    "atcoder": api_fetchers.fetch_atcoder_solved,
    "codechef": api_fetchers.fetch_codechef_solved,
}


def _platform_result(platform: str, handle: Optional[str]) -> Dict:
    if not handle:
        return {"handle": "", "solved": None, "error": None}
    try:
        solved = PLATFORM_FETCHERS[platform](handle)
    except NotFound:
        return {"handle": handle, "solved": None, "error": "Handle not found"}
    except TrackerError as e:
        logger.warning("%s solved count failed for %s: %s", platform, handle, e)
        return {"handle": handle, "solved": None, "error": "Fetch failed"}
    return {"handle": handle, "solved": solved, "error": None}


def platform_stats(cf: Optional[str] = None, lc: Optional[str] = None,
                   at: Optional[str] = None, cc: Optional[str] = None, cache=None) -> Dict:
    cache = stats_cache if cache is None else cache
    handles = {
        "codeforces": (cf or "").strip(),
        "leetcode": (lc or "").strip(),
        "atcoder": (at or "").strip(),
        "codechef": (cc or "").strip(),
    }
    if not any(handles.values()):
        raise ValidationFailure("Provide at least one handle.")

    key = cache_key(*handles.values())
    cached = cache.get(key)
    if cached is not None:
        return cached

    with ThreadPoolExecutor(max_workers=len(handles)) as executor:
        futures = {p: executor.submit(_platform_result, p, h) for p, h in handles.items()}
        payload = {p: f.result() for p, f in futures.items()}

    payload["total"] = sum(r["solved"] or 0 for r in (payload[p] for p in handles))
    payload["fetchedAt"] = int(time.time() * 1000)

    if not any(payload[p]["error"] == "Fetch failed" for p in handles):
        cache.set(key, payload)
    return payload
