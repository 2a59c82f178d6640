"""
GitHub Service

Workflow dispatch, run status and repository operations against the GitHub
REST API. Same failure contract as the Vercel service: every call returns an
AdapterResult.
"""

import base64
import binascii
import json
from typing import Any, Optional

import httpx
from pydantic import AliasChoices, BaseModel, Field, ValidationError

from ..config import Settings
from ..logging_config import get_logger
from ..results import AdapterResult

logger = get_logger("github")


class WorkflowRun(BaseModel):
    id: int
    status: str = "unknown"
    conclusion: Optional[str] = None
    html_url: str = ""
    created_at: Optional[str] = None
    head_branch: Optional[str] = None


class Repository(BaseModel):
    name: str
    full_name: str = ""
    description: Optional[str] = None
    html_url: str = ""
    private: bool = False
    updated_at: Optional[str] = None


class Commit(BaseModel):
    sha: str
    message: str = ""
    author: str = ""

    @property
    def headline(self) -> str:
        return f"{self.sha[:7]} {self.message.splitlines()[0] if self.message else ''}".strip()


class CreatedRepository(BaseModel):
    name: str
    html_url: str = Field(validation_alias=AliasChoices("html_url", "url"))


class GitHubClient:
    """Client for the GitHub REST API, scoped to one owner."""

    BASE_URL = "https://api.github.com"

    def __init__(self, settings: Settings, http: httpx.AsyncClient, base_url: str = None):
        self.token = settings.github_token
        self.owner = settings.github_owner
        self.timeout = settings.http_timeout_seconds
        self.http = http
        self.base_url = (base_url or self.BASE_URL).rstrip("/")

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict] = None,
        json_body: Optional[dict] = None,
        not_found: str = "Resource not found",
        require_owner: bool = True,
    ) -> AdapterResult[Any]:
        if not self.token:
            return AdapterResult.not_configured("GITHUB_TOKEN")
        if require_owner and not self.owner:
            return AdapterResult.not_configured("GITHUB_OWNER")

        try:
            response = await self.http.request(
                method,
                f"{self.base_url}{path}",
                params=params,
                json=json_body,
                headers={
                    "Authorization": f"Bearer {self.token}",
                    "Accept": "application/vnd.github.v3+json",
                },
                timeout=self.timeout,
            )
        except httpx.TimeoutException:
            logger.warning(f"GitHub {method} {path} timed out")
            return AdapterResult.fail("GitHub request timed out")
        except httpx.HTTPError as e:
            logger.warning(f"GitHub {method} {path} failed: {e}")
            return AdapterResult.fail(f"GitHub request failed: {e.__class__.__name__}")

        if response.status_code == 404:
            return AdapterResult.not_found(not_found)

        if not response.is_success:
            message = _error_message(response)
            logger.warning(f"GitHub {method} {path} -> {response.status_code}: {message}")
            return AdapterResult.fail(f"GitHub API error: {response.status_code} - {message}")

        # Some endpoints return 204 No Content
        if response.status_code == 204 or not response.content:
            return AdapterResult.ok({})

        try:
            return AdapterResult.ok(response.json())
        except json.JSONDecodeError:
            return AdapterResult.fail("GitHub API returned invalid JSON")

    # =========================================================================
    # AUTOMATION (Actions workflows)
    # =========================================================================

    async def trigger_workflow(
        self,
        repo: str,
        workflow_id: str,
        inputs: dict[str, str],
        ref: str = "main",
    ) -> AdapterResult[dict]:
        """Dispatch a workflow_dispatch event. GitHub answers 204 with no run id."""
        return await self._request(
            "POST",
            f"/repos/{self.owner}/{repo}/actions/workflows/{workflow_id}/dispatches",
            json_body={"ref": ref, "inputs": inputs},
            not_found=f"Workflow '{workflow_id}' not found in '{repo}'",
        )

    async def get_latest_workflow_run(self, repo: str, workflow_id: str) -> AdapterResult[Optional[WorkflowRun]]:
        """Most recent run, or a successful None payload when the workflow never ran."""
        result = await self._request(
            "GET",
            f"/repos/{self.owner}/{repo}/actions/workflows/{workflow_id}/runs",
            params={"per_page": 1},
            not_found=f"Workflow '{workflow_id}' not found in '{repo}'",
        )
        if not result.success:
            return result

        payload = result.payload
        runs = (payload.get("workflow_runs") or []) if isinstance(payload, dict) else None
        if not isinstance(runs, list):
            return AdapterResult.fail("Unexpected GitHub workflow run payload")
        if not runs:
            return AdapterResult.ok(None)
        try:
            return AdapterResult.ok(WorkflowRun.model_validate(runs[0]))
        except ValidationError:
            return AdapterResult.fail("Unexpected GitHub workflow run payload")

    # =========================================================================
    # REPOSITORIES
    # =========================================================================

    async def list_repos(self, owner: Optional[str] = None, query: Optional[str] = None) -> AdapterResult[list[Repository]]:
        """
        Repositories for an owner, most recently updated first.

        query keeps repos whose name or description contains it (case-insensitive).
        """
        owner = owner or self.owner
        result = await self._request(
            "GET",
            f"/users/{owner}/repos",
            params={"per_page": 100, "sort": "updated"},
            not_found=f"GitHub owner '{owner}' not found",
            require_owner=not owner,
        )
        if not result.success:
            return result

        if not isinstance(result.payload, list):
            return AdapterResult.fail("Unexpected GitHub repository list payload")

        repos = []
        for item in result.payload:
            try:
                repos.append(Repository.model_validate(item))
            except ValidationError:
                continue

        if query:
            needle = query.lower()
            repos = [
                repo for repo in repos
                if needle in repo.name.lower() or needle in (repo.description or "").lower()
            ]
        return AdapterResult.ok(repos)

    async def repo_exists(self, repo: str) -> AdapterResult[bool]:
        result = await self._request("GET", f"/repos/{self.owner}/{repo}")
        if result.success:
            return AdapterResult.ok(True)
        if result.is_not_found:
            return AdapterResult.ok(False)
        return result

    async def create_repo(self, name: str, description: str = "", private: bool = False) -> AdapterResult[CreatedRepository]:
        result = await self._request(
            "POST",
            "/user/repos",
            json_body={
                "name": name,
                "description": description,
                "private": private,
                "auto_init": False,
            },
        )
        if not result.success:
            return result
        try:
            return AdapterResult.ok(CreatedRepository.model_validate(result.payload))
        except ValidationError:
            return AdapterResult.ok(
                CreatedRepository(name=name, html_url=f"https://github.com/{self.owner}/{name}")
            )

    async def list_commits(self, repo: str, limit: int = 5) -> AdapterResult[list[Commit]]:
        result = await self._request(
            "GET",
            f"/repos/{self.owner}/{repo}/commits",
            params={"per_page": limit},
            not_found=f"Repository '{repo}' not found",
        )
        if not result.success:
            return result

        if not isinstance(result.payload, list):
            return AdapterResult.fail("Unexpected GitHub commit list payload")

        commits = []
        for item in result.payload:
            if not isinstance(item, dict):
                continue
            commit = item.get("commit") if isinstance(item.get("commit"), dict) else {}
            author = commit.get("author") if isinstance(commit.get("author"), dict) else {}
            commits.append(Commit(
                sha=str(item.get("sha") or ""),
                message=str(commit.get("message") or ""),
                author=str(author.get("name") or ""),
            ))
        return AdapterResult.ok(commits[:limit])

    async def get_file_content(self, repo: str, path: str) -> AdapterResult[str]:
        """Decoded text of a file on the default branch."""
        result = await self._request(
            "GET",
            f"/repos/{self.owner}/{repo}/contents/{path}",
            not_found=f"'{path}' not found in '{repo}'",
        )
        if not result.success:
            return result

        content = result.payload.get("content") if isinstance(result.payload, dict) else None
        if content is None:
            return AdapterResult.fail(f"'{path}' is not a file")
        try:
            return AdapterResult.ok(base64.b64decode(content).decode("utf-8", errors="replace"))
        except (binascii.Error, ValueError):
            return AdapterResult.fail(f"Could not decode '{path}'")


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except json.JSONDecodeError:
        return response.text[:200] or response.reason_phrase
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])[:200]
    return response.reason_phrase
