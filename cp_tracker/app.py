# app.py
"""
Platform stats API.
- Codeforces profile / compare / coach / practice ladders
- LeetCode profile / coach
- Multi-platform solved totals (Codeforces, LeetCode, AtCoder, CodeChef)
- TTL caches, per-IP rate limiter on the stats route, CORS
"""
import logging
import threading
import time
from collections import defaultdict, deque
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from . import coach, config, ladders, pipeline
from .errors import TrackerError

logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

# ---------------------------------------------------
# RATE LIMITER
# ---------------------------------------------------

_rate_buckets = defaultdict(lambda: deque())
_rate_lock = threading.Lock()


def client_ip(request: Request) -> str:
    if config.TRUST_FORWARDED_FOR:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _prune_idle(now: float):
    # caller holds _rate_lock
    cutoff = now - config.RATE_PERIOD
    for ip in [ip for ip, dq in _rate_buckets.items() if not dq or dq[-1] <= cutoff]:
        del _rate_buckets[ip]


def check_rate_limit(request: Request):
    ip = client_ip(request)
    now = time.time()
    with _rate_lock:
        _prune_idle(now)
        dq = _rate_buckets[ip]
        while dq and dq[0] <= now - config.RATE_PERIOD:
            dq.popleft()
        if len(dq) >= config.RATE_LIMIT:
            raise HTTPException(
                status_code=429,
                detail="Rate limit exceeded, try again in a minute.",
            )
        dq.append(now)
    return True

# ---------------------------------------------------
# FASTAPI APP
# ---------------------------------------------------

app = FastAPI(title="CP Stats API", version="1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TrackerError)
async def tracker_error_handler(request: Request, exc: TrackerError):
    if exc.status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse({"error": str(exc)}, status_code=exc.status_code)


@app.exception_handler(HTTPException)
async def http_error_handler(request: Request, exc: HTTPException):
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code)


class CoachRequest(BaseModel):
    handle: Optional[str] = None
    goal: Optional[int] = None


class SheetRequest(BaseModel):
    handle: Optional[str] = None
    ladderId: Optional[str] = None


class LeetCodeCoachRequest(BaseModel):
    username: Optional[str] = None
    goalMedium: Optional[int] = None
    goalHard: Optional[int] = None

# Codeforces
@app.get("/v1/codeforces")
def api_codeforces(handle: Optional[str] = None):
    return pipeline.aggregate_best_effort(handle)


@app.get("/v1/codeforces/compare")
def api_codeforces_compare(h1: Optional[str] = None, h2: Optional[str] = None):
    return pipeline.compare(h1, h2)


@app.post("/v1/codeforces/coach")
def api_codeforces_coach(body: CoachRequest):
    return coach.codeforces_coach(body.handle, body.goal)


@app.post("/v1/codeforces/sheet")
def api_codeforces_sheet(body: SheetRequest):
    return ladders.build_sheet(body.handle, body.ladderId)

# LeetCode
@app.get("/v1/leetcode")
def api_leetcode(username: Optional[str] = None):
    return pipeline.leetcode_profile(username)


@app.post("/v1/leetcode/coach")
def api_leetcode_coach(body: LeetCodeCoachRequest):
    return coach.leetcode_coach(body.username, body.goalMedium, body.goalHard)

# All platforms
@app.get("/v1/stats")
def api_stats(cf: Optional[str] = None, lc: Optional[str] = None,
              at: Optional[str] = None, cc: Optional[str] = None,
              _rl=Depends(check_rate_limit)):
    return pipeline.platform_stats(cf, lc, at, cc)

# Health + cache admin
@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/admin/clear_cache")
def _clear():
    for c in pipeline.ALL_CACHES:
        c.clear()
    return {"cache": "cleared"}
