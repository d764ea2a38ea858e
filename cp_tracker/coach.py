"""
Coaching reports: weak-topic detection, problem recommendations and an
LLM-written training plan with a deterministic fallback.
"""
import logging
from typing import Dict, Iterable, List, Optional

import requests

from . import config, pipeline
from .aggregate import problem_key
from .api_fetchers import ac_counts

logger = logging.getLogger(__name__)

# ---------------------------------------------------
# LLM advice
# ---------------------------------------------------

def generate_advice(system: str, prompt: str, fallback: str, max_tokens: int = 300) -> str:
    """Chat completion when a key is configured, `fallback` otherwise or on any failure."""
    if not config.OPENAI_API_KEY:
        return fallback
    try:
        r = requests.post(
            config.OPENAI_URL,
            headers={"Authorization": f"Bearer {config.OPENAI_API_KEY}",
                     "Content-Type": "application/json"},
            json={
                "model": config.OPENAI_MODEL,
                "messages": [{"role": "system", "content": system},
                             {"role": "user", "content": prompt}],
                "max_tokens": max_tokens,
            },
            timeout=config.OPENAI_TIMEOUT,
        )
        r.raise_for_status()
        content = r.json()["choices"][0]["message"]["content"]
    except (requests.RequestException, ValueError, KeyError, IndexError, TypeError) as e:
        logger.warning("LLM advice failed, using fallback: %s", e)
        return fallback
    return content or fallback

# ---------------------------------------------------
# Codeforces
# ---------------------------------------------------

COMMON_TAGS = [
    "dp", "greedy", "graphs", "math", "constructive algorithms", "implementation",
    "brute force", "sortings", "data structures", "binary search", "dfs and similar",
    "trees", "number theory", "strings",
]


def weakest_tags(tag_counts: Dict[str, int], candidates: Iterable[str], limit: int) -> List[str]:
    # sorted() is stable: ties keep candidate order
    return sorted(candidates, key=lambda t: tag_counts.get(t, 0))[:limit]


def recommend_problems(problems: List[Dict], solved: set, current: int, target: int,
                       weak: List[str], limit: int = 5) -> List[Dict]:
    picks = []
    for p in problems:
        rating = p.get("rating")
        if rating is None or not current <= rating <= target + 100:
            continue
        if problem_key(p) in solved:
            continue
        score = 10 if any(t in weak for t in p.get("tags") or []) else 0
        picks.append({**p, "score": score})
    picks.sort(key=lambda p: (-p["score"], p["rating"]))
    return picks[:limit]


def codeforces_coach(handle: str, goal: Optional[int] = None) -> Dict:
    result = pipeline.aggregate_strict(handle)
    handle = result["info"]["handle"] or handle.strip()
    current = result["info"]["rating"] or 800
    target = goal or current + 200

    weak = weakest_tags(result["tagCounts"], COMMON_TAGS, 5)
    recommendations = recommend_problems(
        pipeline.problemset(), set(result["solvedKeys"]), current, target, weak)

    rec_lines = "\n".join(
        f'- {p.get("name")} ({p["rating"]}) [{", ".join(p.get("tags") or [])}]'
        for p in recommendations)
    prompt = (
        f"You are a competitive programming coach for user {handle}.\n"
        f"Current Rating: {current}. Target: {target}.\n\n"
        f"Solved Tag Distribution (Top 5 Weakest Common Tags):\n{', '.join(weak)}\n\n"
        f"Recommended Problems to Solve:\n{rec_lines}\n\n"
        "Provide a short, structured training plan. Explain WHY these tags strictly "
        "(2 sentences). Then give 3 validation tips for the recommended problems."
    )
    fallback = (
        f"Your analysis indicates potential gaps in: {', '.join(weak)}. "
        f"To reach {target}, focus on solving problems in the {current}-{target} range "
        "specifically targeting these topics. The recommended set above prioritizes "
        "these tags to balance your skill set."
    )
    advice = generate_advice("You are a concise, motivating CP coach.", prompt, fallback)

    return {
        "tagCounts": result["tagCounts"],
        "weakTags": weak,
        "recommendations": recommendations,
        "aiAdvice": advice,
    }

# ---------------------------------------------------
# LeetCode
# ---------------------------------------------------

TAG_TIERS = {
    "fundamental": ["array", "string", "hash-table", "math", "sorting", "greedy",
                    "binary-search", "two-pointers"],
    "intermediate": ["dynamic-programming", "depth-first-search", "breadth-first-search",
                     "backtracking", "stack", "queue", "linked-list", "tree", "graph",
                     "sliding-window", "prefix-sum"],
    "advanced": ["segment-tree", "trie", "union-find", "topological-sort", "bit-manipulation",
                 "monotonic-stack", "divide-and-conquer"],
}

TOPIC_DIFFICULTY = {"fundamental": "Easy/Medium", "intermediate": "Medium", "advanced": "Medium/Hard"}
SUGGESTED_COUNT = {"Easy/Medium": 20, "Medium": 15, "Medium/Hard": 10}


def user_level(medium: int, hard: int) -> str:
    if medium > 150 or hard > 50:
        return "advanced"
    if medium > 50 or hard > 10:
        return "intermediate"
    return "beginner"


def relevant_tags(level: str) -> List[str]:
    if level == "beginner":
        return TAG_TIERS["fundamental"]
    if level == "intermediate":
        return TAG_TIERS["fundamental"] + TAG_TIERS["intermediate"]
    return TAG_TIERS["intermediate"] + TAG_TIERS["advanced"]


def _tier_of(slug: str) -> str:
    for tier, slugs in TAG_TIERS.items():
        if slug in slugs:
            return tier
    return "advanced"


def leetcode_fallback_advice(username, easy, medium, hard, weak, target_medium, target_hard) -> str:
    top_weak = ", ".join(t.replace("-", " ") for t in weak[:3])
    return (
        f"Analysis for {username}: you've solved {easy} Easy / {medium} Medium / {hard} Hard problems.\n\n"
        f"Priority topics: your weakest areas are {top_weak}. Spend the first 2 weeks on these, "
        "3-5 problems per topic before moving on.\n\n"
        f"Daily plan: solve 2-3 Mediums daily and 1 Hard on weekends. To hit your goal you need "
        f"{max(0, target_medium - medium)} more Mediums and {max(0, target_hard - hard)} more Hards.\n\n"
        "Contest tip: take the weekly LeetCode contest every Sunday. Timed pressure builds "
        "instincts that solo practice can't."
    )


def leetcode_coach(username: str, goal_medium: Optional[int] = None,
                   goal_hard: Optional[int] = None) -> Dict:
    data = pipeline.leetcode_profile(username)
    username = username.strip()
    user = data["matchedUser"]
    contest = data.get("userContestRanking") or {}

    ac_stats = ac_counts(user)
    total_stats = ac_counts(user, "totalSubmissionNum")
    easy = ac_stats.get("Easy", 0)
    medium = ac_stats.get("Medium", 0)
    hard = ac_stats.get("Hard", 0)

    tag_counts = user.get("tagProblemCounts") or {}
    all_tags = [{**t, "tier": tier}
                for tier in ("fundamental", "intermediate", "advanced")
                for t in tag_counts.get(tier) or []]
    solved_by_slug = {t["tagSlug"]: t.get("problemsSolved") or 0 for t in all_tags}

    level = user_level(medium, hard)
    weak = weakest_tags(solved_by_slug, relevant_tags(level), 6)

    recommendations = []
    for slug in weak[:5]:
        difficulty = TOPIC_DIFFICULTY[_tier_of(slug)]
        recommendations.append({
            "topic": slug.replace("-", " "),
            "difficulty": difficulty,
            "url": f"https://leetcode.com/tag/{slug}/",
            "solvedCount": solved_by_slug.get(slug, 0),
            "suggestedCount": SUGGESTED_COUNT[difficulty],
        })

    tag_distribution = sorted(all_tags, key=lambda t: t.get("problemsSolved") or 0, reverse=True)[:15]

    rating = contest.get("rating")
    contest_rating = round(rating) if rating else None
    target_medium = goal_medium or medium + 25
    target_hard = goal_hard or hard + 10

    prompt = (
        f"You are a LeetCode coach for user {username}.\n"
        f"Solved: Easy: {easy}, Medium: {medium}, Hard: {hard}.\n"
        f"Contest Rating: {contest_rating if contest_rating is not None else 'N/A'}.\n"
        f"Weak Topics (by tag slug): {', '.join(weak)}.\n"
        f"Goal: Medium {target_medium}, Hard {target_hard}.\n\n"
        "Write a concise, actionable 30-day improvement plan:\n"
        "1. Which 3 topics to focus on first and why\n"
        "2. Daily study routine (problems per day, difficulty mix)\n"
        "3. Contest preparation tip\n"
        "Keep it under 200 words, motivating, and specific."
    )
    fallback = leetcode_fallback_advice(username, easy, medium, hard, weak, target_medium, target_hard)
    advice = generate_advice("You are a concise, motivating LeetCode and interview prep coach.",
                             prompt, fallback)

    return {
        "acStats": ac_stats,
        "totalStats": total_stats,
        "weakTags": weak,
        "recommendations": recommendations,
        "tagDistribution": tag_distribution,
        "aiAdvice": advice,
        "userLevel": level,
        "contestRating": contest_rating,
        "attendedContests": contest.get("attendedContestsCount") or 0,
    }
