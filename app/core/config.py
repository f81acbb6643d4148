"""
Configuration
=============
Loads environment variables from .env file using python-dotenv.

Environment Variables:
    GITHUB_TOKEN             — Token used to read GitHub Actions runs
    DEPLOY_REPO              — "owner/repo" whose workflow runs are monitored
    DEPLOY_STATUS_URL        — Optional proxy endpoint returning {"runs": [...]};
                               when set it takes precedence over DEPLOY_REPO
    DEPLOY_POLL_ACTIVE_MS    — Poll cadence while a deploy is queued/running (default: 15000)
    DEPLOY_POLL_IDLE_MS      — Poll cadence when idle (default: 120000)
    DEPLOY_TICK_MS           — Badge ticker cadence (default: 1000)
    DEPLOY_RUNS_PER_PAGE     — How many recent runs to request (default: 5)
    DEPLOY_PROVIDER_TIMEOUT  — HTTP timeout in seconds for provider calls (default: 15)
    LOCAL_STORE_PATH         — JSON file backing the local key/value store
                               (default: var/local_store.json, empty = memory only)
    ENABLE_DEPLOY_MONITOR    — Start the background monitor with the app (default: true)

Polling Philosophy:
    The poll interval is adaptive. While the head run is queued or in
    progress the monitor polls every DEPLOY_POLL_ACTIVE_MS so the badge
    follows the deploy closely; otherwise it backs off to
    DEPLOY_POLL_IDLE_MS. A failed poll simply waits for the next cycle.
"""
import os
from dotenv import load_dotenv

load_dotenv()

GITHUB_TOKEN = os.getenv("GITHUB_TOKEN")
DEPLOY_REPO = os.getenv("DEPLOY_REPO", "")
DEPLOY_STATUS_URL = os.getenv("DEPLOY_STATUS_URL", "")

# Poll cadence in milliseconds
DEPLOY_POLL_ACTIVE_MS = int(os.getenv("DEPLOY_POLL_ACTIVE_MS", 15000))
DEPLOY_POLL_IDLE_MS = int(os.getenv("DEPLOY_POLL_IDLE_MS", 120000))
DEPLOY_TICK_MS = int(os.getenv("DEPLOY_TICK_MS", 1000))

# Provider request shaping
DEPLOY_RUNS_PER_PAGE = int(os.getenv("DEPLOY_RUNS_PER_PAGE", 5))
DEPLOY_PROVIDER_TIMEOUT = float(os.getenv("DEPLOY_PROVIDER_TIMEOUT", 15.0))

# Local persisted store (page-local storage equivalent)
LOCAL_STORE_PATH = os.getenv("LOCAL_STORE_PATH", os.path.join("var", "local_store.json"))

ENABLE_DEPLOY_MONITOR = os.getenv("ENABLE_DEPLOY_MONITOR", "true").lower() == "true"
