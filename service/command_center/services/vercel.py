"""
Vercel Service

Typed wrapper around the Vercel REST API. Every operation returns an
AdapterResult; HTTP errors, timeouts and missing credentials never escape as
exceptions.
"""

import json
from typing import Any, Optional

import httpx
from pydantic import AliasChoices, BaseModel, Field, ValidationError

from ..config import Settings
from ..logging_config import get_logger
from ..results import AdapterResult, FailureKind

logger = get_logger("vercel")

DEFAULT_TARGETS = ("production", "preview")


class Deployment(BaseModel):
    id: str = Field(validation_alias=AliasChoices("uid", "id"))
    name: str = ""
    url: str = ""
    state: str = Field(default="UNKNOWN", validation_alias=AliasChoices("state", "readyState"))
    created_at: int = Field(default=0, validation_alias=AliasChoices("createdAt", "created"))
    target: Optional[str] = None
    meta: dict[str, Any] = Field(default_factory=dict)

    @property
    def branch(self) -> Optional[str]:
        return self.meta.get("githubCommitRef") or self.meta.get("gitBranch")

    @property
    def https_url(self) -> str:
        if not self.url or self.url.startswith("http"):
            return self.url
        return f"https://{self.url}"


class Project(BaseModel):
    id: str
    name: str
    framework: Optional[str] = None
    latest_deployments: list[Deployment] = Field(
        default_factory=list, validation_alias=AliasChoices("latestDeployments", "latest_deployments")
    )


class Domain(BaseModel):
    name: str
    verified: bool = False
    git_branch: Optional[str] = Field(default=None, validation_alias=AliasChoices("gitBranch", "git_branch"))


class EnvVar(BaseModel):
    """Environment variable metadata. The value is never read from the API response."""
    id: str = ""
    key: str
    type: str = ""
    target: list[str] = Field(default_factory=list)


class RuntimeLogEntry(BaseModel):
    level: str = "info"
    message: str = ""
    timestamp: int = Field(default=0, validation_alias=AliasChoices("timestampInMs", "timestamp"))
    request_path: Optional[str] = Field(default=None, validation_alias=AliasChoices("requestPath", "request_path"))


class TriggeredDeployment(BaseModel):
    id: str
    url: str


class VercelClient:
    """Client for the Vercel REST API."""

    BASE_URL = "https://api.vercel.com"

    def __init__(self, settings: Settings, http: httpx.AsyncClient, base_url: str = None):
        self.token = settings.vercel_api_token
        self.team_id = settings.vercel_team_id
        self.github_owner = settings.github_owner
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
        raw: bool = False,
    ) -> AdapterResult[Any]:
        """Perform one call. Translates every failure mode into an AdapterResult."""
        if not self.token:
            return AdapterResult.not_configured("VERCEL_API_TOKEN")

        query = dict(params or {})
        if self.team_id:
            query["teamId"] = self.team_id

        try:
            response = await self.http.request(
                method,
                f"{self.base_url}{path}",
                params=query,
                json=json_body,
                headers={"Authorization": f"Bearer {self.token}"},
                timeout=self.timeout,
            )
        except httpx.TimeoutException:
            logger.warning(f"Vercel {method} {path} timed out")
            return AdapterResult.fail("Vercel request timed out")
        except httpx.HTTPError as e:
            logger.warning(f"Vercel {method} {path} failed: {e}")
            return AdapterResult.fail(f"Vercel request failed: {e.__class__.__name__}")

        if response.status_code == 404:
            return AdapterResult.not_found(not_found)

        if not response.is_success:
            message = _error_message(response)
            logger.warning(f"Vercel {method} {path} -> {response.status_code}: {message}")
            return AdapterResult.fail(f"Vercel API error: {response.status_code} - {message}")

        if raw:
            return AdapterResult.ok(response.text)

        if response.status_code == 204 or not response.content:
            return AdapterResult.ok({})

        try:
            return AdapterResult.ok(response.json())
        except json.JSONDecodeError:
            return AdapterResult.fail("Vercel API returned invalid JSON")

    # =========================================================================
    # PROJECTS & DEPLOYMENTS
    # =========================================================================

    async def list_projects(self, limit: int = 50) -> AdapterResult[list[Project]]:
        result = await self._request("GET", "/v9/projects", params={"limit": limit})
        if not result.success:
            return result
        return _parse_list_field(result.payload, "projects", Project)

    async def get_project(self, name_or_id: str) -> AdapterResult[Project]:
        result = await self._request(
            "GET", f"/v9/projects/{name_or_id}", not_found=f"Project '{name_or_id}' not found"
        )
        if not result.success:
            return result
        return _parse_one(result.payload, Project)

    async def list_deployments(
        self,
        project_id: str,
        limit: int = 5,
        target: Optional[str] = None,
        state: Optional[str] = None,
    ) -> AdapterResult[list[Deployment]]:
        params = {"projectId": project_id, "limit": limit}
        if target:
            params["target"] = target
        if state:
            params["state"] = state
        result = await self._request("GET", "/v6/deployments", params=params)
        if not result.success:
            return result
        return _parse_list_field(result.payload, "deployments", Deployment)

    async def get_deployment_events(self, deployment_id: str, limit: int = 50) -> AdapterResult[list[str]]:
        """Build output lines for a deployment (bounded by limit)."""
        result = await self._request(
            "GET",
            f"/v2/deployments/{deployment_id}/events",
            params={"limit": limit},
            not_found=f"Deployment '{deployment_id}' not found",
        )
        if not result.success:
            return result

        payload = result.payload
        events = (payload.get("logs") or []) if isinstance(payload, dict) else payload
        if not isinstance(events, list):
            return AdapterResult.fail("Unexpected Vercel events payload")
        lines = []
        for event in events:
            if not isinstance(event, dict):
                continue
            nested = event.get("payload")
            text = event.get("text") or (nested.get("text") if isinstance(nested, dict) else None)
            if text:
                lines.append(str(text))
        return AdapterResult.ok(lines[-limit:])

    async def get_runtime_logs(
        self,
        project_id: str,
        deployment_id: str,
        limit: int = 50,
        level: Optional[str] = None,
    ) -> AdapterResult[list[RuntimeLogEntry]]:
        """
        Runtime (function) log entries for a deployment.

        The endpoint streams newline-delimited JSON; lines that don't parse are
        skipped. When level is given only entries of that level are kept.
        """
        result = await self._request(
            "GET",
            f"/v1/projects/{project_id}/deployments/{deployment_id}/runtime-logs",
            not_found=f"Deployment '{deployment_id}' not found",
            raw=True,
        )
        if not result.success:
            return result

        entries = []
        for line in result.payload.splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                entry = RuntimeLogEntry.model_validate(json.loads(line))
            except (json.JSONDecodeError, ValidationError, TypeError):
                continue
            if level and entry.level.lower() != level.lower():
                continue
            entries.append(entry)
        return AdapterResult.ok(entries[-limit:])

    async def trigger_deployment(
        self,
        project_name: str,
        branch: Optional[str] = None,
        production: bool = True,
    ) -> AdapterResult[TriggeredDeployment]:
        """
        Start a new deployment.

        Without a branch the latest deployment is redeployed. With a branch a
        fresh build is created from the GitHub repo of the same name.
        """
        project = await self.get_project(project_name)
        if not project.success:
            return project

        body: dict[str, Any] = {
            "name": project_name,
            "project": project.payload.id,
            "target": "production" if production else "preview",
        }

        if branch:
            if not self.github_owner:
                return AdapterResult.not_configured("GITHUB_OWNER")
            body["gitSource"] = {
                "type": "github",
                "org": self.github_owner,
                "repo": project_name,
                "ref": branch,
            }
        else:
            latest = await self.list_deployments(project.payload.id, limit=1)
            if not latest.success:
                return latest
            if not latest.payload:
                return AdapterResult.not_found(f"No previous deployment to redeploy for '{project_name}'")
            body["deploymentId"] = latest.payload[0].id

        result = await self._request("POST", "/v13/deployments", json_body=body)
        if not result.success:
            return result

        deployment = _parse_one(result.payload, Deployment)
        if not deployment.success:
            return deployment
        return AdapterResult.ok(
            TriggeredDeployment(id=deployment.payload.id, url=deployment.payload.https_url)
        )

    async def rollback(self, project_id: str, deployment_id: str) -> AdapterResult[dict]:
        """Point production back at an earlier deployment."""
        return await self._request(
            "POST",
            f"/v9/projects/{project_id}/rollback/{deployment_id}",
            not_found=f"Deployment '{deployment_id}' not found",
        )

    async def promote(self, project_id: str, deployment_id: str) -> AdapterResult[dict]:
        """Promote a (preview) deployment to production."""
        return await self._request(
            "POST",
            f"/v10/projects/{project_id}/promote/{deployment_id}",
            not_found=f"Deployment '{deployment_id}' not found",
        )

    async def cancel_deployment(self, deployment_id: str) -> AdapterResult[Deployment]:
        result = await self._request(
            "PATCH",
            f"/v12/deployments/{deployment_id}/cancel",
            not_found=f"Deployment '{deployment_id}' not found",
        )
        if not result.success:
            return result
        return _parse_one(result.payload, Deployment)

    # =========================================================================
    # DOMAINS
    # =========================================================================

    async def list_domains(self, project_id: str) -> AdapterResult[list[Domain]]:
        result = await self._request("GET", f"/v9/projects/{project_id}/domains")
        if not result.success:
            return result
        return _parse_list_field(result.payload, "domains", Domain)

    async def add_domain(self, project_id: str, domain: str) -> AdapterResult[Domain]:
        result = await self._request(
            "POST", f"/v10/projects/{project_id}/domains", json_body={"name": domain}
        )
        if not result.success:
            return result
        return _parse_one(result.payload, Domain)

    # =========================================================================
    # ENVIRONMENT VARIABLES
    # =========================================================================

    async def list_env_vars(self, project_id: str) -> AdapterResult[list[EnvVar]]:
        result = await self._request("GET", f"/v10/projects/{project_id}/env")
        if not result.success:
            return result
        return _parse_list_field(result.payload, "envs", EnvVar)

    async def set_env_var(
        self,
        project_id: str,
        key: str,
        value: str,
        targets: tuple[str, ...] = DEFAULT_TARGETS,
    ) -> AdapterResult[str]:
        """Create or update an encrypted env var. Payload is "created" or "updated"."""
        existing = await self.list_env_vars(project_id)
        if not existing.success:
            return existing

        current = next((env for env in existing.payload if env.key == key), None)
        if current:
            result = await self._request(
                "PATCH",
                f"/v10/projects/{project_id}/env/{current.id}",
                json_body={"value": value, "target": list(targets)},
            )
            action = "updated"
        else:
            result = await self._request(
                "POST",
                f"/v10/projects/{project_id}/env",
                json_body={"key": key, "value": value, "target": list(targets), "type": "encrypted"},
            )
            action = "created"

        if not result.success:
            return result
        return AdapterResult.ok(action)

    # =========================================================================
    # PREVIEWS
    # =========================================================================

    async def get_preview_url(self, project_id: str, branch: str = "main") -> AdapterResult[str]:
        deployments = await self.list_deployments(project_id, limit=20, target="preview")
        if not deployments.success:
            return deployments

        for deployment in deployments.payload:
            if deployment.branch == branch:
                return AdapterResult.ok(deployment.https_url)

        return AdapterResult.not_found(f"No preview deployment found for branch '{branch}'")


def _error_message(response: httpx.Response) -> str:
    """Short reason from a Vercel error body ({"error": {"message": ...}})."""
    try:
        body = response.json()
    except json.JSONDecodeError:
        return response.text[:200] or response.reason_phrase
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])[:200]
        if body.get("message"):
            return str(body["message"])[:200]
    return response.reason_phrase


def _parse_one(data: Any, model: type[BaseModel]) -> AdapterResult:
    try:
        return AdapterResult.ok(model.model_validate(data))
    except ValidationError:
        return AdapterResult.fail(f"Unexpected Vercel {model.__name__} payload", FailureKind.UPSTREAM)


def _parse_list_field(data: Any, field: str, model: type[BaseModel]) -> AdapterResult:
    """Parse the list under `field` of an object payload; any other shape is an upstream failure."""
    items = (data.get(field) or []) if isinstance(data, dict) else None
    if not isinstance(items, list):
        logger.warning(f"Vercel {model.__name__} list payload has unexpected shape")
        return AdapterResult.fail(f"Unexpected Vercel {model.__name__} payload", FailureKind.UPSTREAM)
    parsed = []
    for item in items:
        try:
            parsed.append(model.model_validate(item))
        except ValidationError:
            logger.debug(f"Skipping malformed {model.__name__} entry")
    return AdapterResult.ok(parsed)
