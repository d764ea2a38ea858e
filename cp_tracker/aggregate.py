"""
Submission deduplication and bucketing.
Pure functions over raw Codeforces submission dicts: no cache, no network.
"""
from typing import Any, Dict, List, Optional

ACCEPTED = "OK"

# (inclusive upper bound, label); the last bucket is open-ended
RATING_BUCKETS = [
    (800, "≤800"),
    (1000, "801–1000"),
    (1200, "1001–1200"),
    (1400, "1201–1400"),
    (1600, "1401–1600"),
    (1900, "1601–1900"),
    (None, "1901+"),
]


def bucket_for(rating: int) -> str:
    for upper, label in RATING_BUCKETS:
        if upper is None or rating <= upper:
            return label
    raise AssertionError("unreachable: last bucket is open-ended")


def empty_buckets() -> Dict[str, int]:
    return {label: 0 for _, label in RATING_BUCKETS}


def problem_key(problem: Dict) -> str:
    return f'{problem.get("contestId", "")}-{problem.get("index", "")}'


def problem_url(contest_id, index) -> str:
    return f"https://codeforces.com/problemset/problem/{contest_id}/{index}"


def _rating_sort_key(prob: Dict):
    # unrated last; list.sort is stable so ties keep encounter order
    rating = prob["rating"]
    return (rating is None, rating or 0)


def summarize_submissions(submissions: List[Dict]) -> Dict[str, Any]:
    """Single pass over a submission history.

    The first accepted submission of each (contestId, index) counts; any later
    accepted submission of the same problem is ignored so tags and buckets are
    never double counted.
    """
    solved = set()
    solved_keys: List[str] = []
    buckets = empty_buckets()
    tag_counts: Dict[str, int] = {}
    tag_problems: Dict[str, List[Dict]] = {}

    for sub in submissions:
        problem = sub.get("problem")
        if sub.get("verdict") != ACCEPTED or not problem:
            continue
        key = problem_key(problem)
        if key in solved:
            continue
        solved.add(key)
        solved_keys.append(key)

        rating: Optional[int] = problem.get("rating") or None
        if rating:
            buckets[bucket_for(rating)] += 1

        prob = {
            "name": problem.get("name"),
            "contestId": problem.get("contestId"),
            "index": problem.get("index"),
            "rating": rating,
            "url": problem_url(problem.get("contestId"), problem.get("index")),
        }
        for tag in problem.get("tags") or []:
            tag_counts[tag] = tag_counts.get(tag, 0) + 1
            tag_problems.setdefault(tag, []).append(prob)

    for probs in tag_problems.values():
        probs.sort(key=_rating_sort_key)

    return {
        "totalSolved": len(solved),
        "solvedKeys": solved_keys,
        "ratingBuckets": buckets,
        "tagCounts": tag_counts,
        "tagProblems": tag_problems,
    }


def count_solved(submissions: List[Dict]) -> int:
    """Distinct accepted problems, without the tag/bucket breakdown."""
    seen = set()
    for sub in submissions:
        if sub.get("verdict") != ACCEPTED or not sub.get("problem"):
            continue
        seen.add(problem_key(sub["problem"]))
    return len(seen)
