"""
Runtime configuration.
Every constant here can be overridden from the environment where it matters
for a deployment (TTLs, timeouts, limits, LLM credentials).
"""
import os

# ---------------------------------------------------
# UPSTREAM APIS
# ---------------------------------------------------

CF_API_BASE = os.getenv("CF_API_BASE", "https://codeforces.com/api")
LEETCODE_GRAPHQL_URL = "https://leetcode.com/graphql"
ATCODER_AC_RANK_URL = "https://kenkoooo.com/atcoder/atcoder-api/v3/user/ac_rank"
CODECHEF_API_URL = "https://www.codechef.com/api/users"
CODECHEF_PROFILE_URL = "https://www.codechef.com/users"

REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "10"))         # seconds
SUBMISSIONS_TIMEOUT = float(os.getenv("SUBMISSIONS_TIMEOUT", "20"))  # user.status is heavy
SUBMISSION_FETCH_COUNT = int(os.getenv("SUBMISSION_FETCH_COUNT", "10000"))

# Browser-like headers, some judges refuse the default requests UA
HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/121.0.0.0 Safari/537.36"
    ),
    "Accept": "application/json,text/html;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}

# ---------------------------------------------------
# CACHES
# ---------------------------------------------------

# Bump whenever the aggregate result shape changes.
AGGREGATE_SCHEMA_VERSION = 3

AGGREGATE_TTL = int(os.getenv("AGGREGATE_TTL", str(20 * 60)))       # seconds
PROBLEMSET_TTL = int(os.getenv("PROBLEMSET_TTL", str(60 * 60)))
LADDER_PROBLEMSET_TTL = int(os.getenv("LADDER_PROBLEMSET_TTL", str(24 * 60 * 60)))
LEETCODE_TTL = int(os.getenv("LEETCODE_TTL", str(30 * 60)))         # LeetCode blocks heavy use
STATS_TTL = int(os.getenv("STATS_TTL", str(60 * 60)))

# ---------------------------------------------------
# RATE LIMIT (stats route)
# ---------------------------------------------------

RATE_LIMIT = int(os.getenv("RATE_LIMIT", "12"))      # requests
RATE_PERIOD = int(os.getenv("RATE_PERIOD", "60"))    # seconds
# Only honour X-Forwarded-For when deployed behind a proxy that sets it
TRUST_FORWARDED_FOR = os.getenv("TRUST_FORWARDED_FOR", "").lower() in ("1", "true", "yes")

# ---------------------------------------------------
# COACHING
# ---------------------------------------------------

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "").strip()
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-3.5-turbo").strip() or "gpt-3.5-turbo"
OPENAI_URL = "https://api.openai.com/v1/chat/completions"
OPENAI_TIMEOUT = float(os.getenv("OPENAI_TIMEOUT", "15"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
