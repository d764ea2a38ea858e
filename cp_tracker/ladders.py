"""Practice ladders: fixed rating bands over the problemset, oldest contests first."""
from typing import Dict, List, Optional

from . import pipeline
from .aggregate import problem_key

LADDER_SIZE = 100

# ladder id -> inclusive (min rating, max rating)
LADDERS = {
    "div2a": (800, 1100),
    "div2b": (1100, 1300),
    "div2c": (1300, 1500),
    "div2d": (1500, 1800),
    "div2e": (1800, 2100),
}
DEFAULT_RANGE = (800, 900)


def ladder_problems(problems: List[Dict], ladder_id: Optional[str], solved: set) -> List[Dict]:
    low, high = LADDERS.get(ladder_id, DEFAULT_RANGE)
    picked = [p for p in problems if p.get("rating") is not None and low <= p["rating"] <= high]
    picked.sort(key=lambda p: p.get("contestId") or 0)
    return [{**p, "solved": problem_key(p) in solved} for p in picked[:LADDER_SIZE]]


def build_sheet(handle: Optional[str], ladder_id: Optional[str]) -> Dict:
    solved = pipeline.solved_keys_best_effort(handle)
    problems = pipeline.problemset(cache=pipeline.ladder_problemset_cache)
    return {"problems": ladder_problems(problems, ladder_id, solved)}
