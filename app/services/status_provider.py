"""
Status Provider
===============
Fetches the most recent deploy runs from outside the process.

Providers:
    GitHubActionsProvider — GET /repos/{owner}/{repo}/actions/runs?per_page=N
                            straight against the GitHub REST API
    ProxyStatusProvider   — GET <url> on a proxy that already returns
                            {"runs": [DeployRun, ...]} in camelCase

Both raise StatusProviderError for every failure (network, HTTP status,
malformed payload) so the monitor has a single exception to catch.
"""
import logging
import re
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from app.core.config import (
    DEPLOY_PROVIDER_TIMEOUT,
    DEPLOY_REPO,
    DEPLOY_RUNS_PER_PAGE,
    DEPLOY_STATUS_URL,
    GITHUB_TOKEN,
)
from app.models.deploy_run import DeployRun

logger = logging.getLogger(__name__)

GITHUB_API = "https://api.github.com"


class StatusProviderError(Exception):
    """Raised when the provider cannot produce a run list."""


def extract_repo_path(repo: str) -> str:
    """Accept "owner/repo" or a GitHub URL and return "owner/repo"."""
    repo = (repo or "").strip()
    match = re.search(r"github\.com[:/](.+?)(?:\.git)?/?$", repo)
    if match:
        return match.group(1).rstrip("/")
    if re.fullmatch(r"[\w.\-]+/[\w.\-]+", repo):
        return repo
    return ""


def _parse_runs(items: List[Any]) -> List[DeployRun]:
    try:
        return [DeployRun.model_validate(item) for item in items]
    except ValidationError as e:
        raise StatusProviderError(f"Malformed run payload: {e.error_count()} validation error(s)") from e


class GitHubActionsProvider:
    """
    Reads workflow runs for one repository from the GitHub Actions API.
    """

    def __init__(
        self,
        repo: str,
        github_token: Optional[str] = None,
        per_page: int = 5,
        timeout: float = 15.0,
    ) -> None:
        self.repo_path = extract_repo_path(repo)
        self.per_page = per_page
        self.timeout = timeout
        self.headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": "Deploy-Status-Monitor",
        }
        if github_token:
            self.headers["Authorization"] = f"token {github_token}"

    @property
    def url(self) -> str:
        return f"{GITHUB_API}/repos/{self.repo_path}/actions/runs?per_page={self.per_page}"

    @staticmethod
    def map_workflow_run(run: Dict[str, Any]) -> Dict[str, Any]:
        """Project a GitHub workflow_run object onto the DeployRun payload shape."""
        head_commit = run.get("head_commit") or {}
        return {
            "id": run.get("id"),
            "runNumber": run.get("run_number") or 0,
            "name": run.get("name"),
            "status": run.get("status"),
            "conclusion": run.get("conclusion"),
            "createdAt": run.get("created_at") or "",
            "updatedAt": run.get("updated_at") or "",
            "htmlUrl": run.get("html_url") or "",
            "commitMessage": head_commit.get("message") or "",
        }

    async def fetch_runs(self) -> List[DeployRun]:
        if not self.repo_path:
            raise StatusProviderError("Deploy repository not configured")
        try:
            async with httpx.AsyncClient(headers=self.headers, timeout=self.timeout) as client:
                response = await client.get(self.url)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise StatusProviderError(f"GitHub API error: {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise StatusProviderError(f"GitHub API request failed: {e}") from e
        except ValueError as e:
            raise StatusProviderError(f"GitHub API returned invalid JSON: {e}") from e

        items = (data or {}).get("workflow_runs") or []
        return _parse_runs([self.map_workflow_run(r) for r in items if isinstance(r, dict)])


class ProxyStatusProvider:
    """
    Reads {"runs": [...]} from a deploy-status proxy endpoint.
    """

    def __init__(self, url: str, token: Optional[str] = None, timeout: float = 15.0) -> None:
        self.url = url
        self.timeout = timeout
        self.headers = {"Accept": "application/json"}
        if token:
            self.headers["Authorization"] = f"Bearer {token}"

    async def fetch_runs(self) -> List[DeployRun]:
        try:
            async with httpx.AsyncClient(headers=self.headers, timeout=self.timeout) as client:
                response = await client.get(self.url)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise StatusProviderError(f"Deploy status proxy error: {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise StatusProviderError(f"Deploy status proxy request failed: {e}") from e
        except ValueError as e:
            raise StatusProviderError(f"Deploy status proxy returned invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise StatusProviderError("Deploy status proxy returned a non-object payload")
        return _parse_runs(data.get("runs") or [])


def build_status_provider():
    """Pick the provider from configuration; the proxy wins when configured."""
    if DEPLOY_STATUS_URL:
        logger.info("Using deploy status proxy at %s", DEPLOY_STATUS_URL)
        return ProxyStatusProvider(DEPLOY_STATUS_URL, token=GITHUB_TOKEN, timeout=DEPLOY_PROVIDER_TIMEOUT)
    logger.info("Using GitHub Actions runs for %s", DEPLOY_REPO or "<unset>")
    return GitHubActionsProvider(
        DEPLOY_REPO,
        github_token=GITHUB_TOKEN,
        per_page=DEPLOY_RUNS_PER_PAGE,
        timeout=DEPLOY_PROVIDER_TIMEOUT,
    )
