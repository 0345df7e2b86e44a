from __future__ import annotations

import asyncio
import json
import logging
import re
from pathlib import PurePosixPath
from time import perf_counter
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import httpx

from envsync.core.config import settings
from envsync.core.errors import (
    DispatchFailedError,
    MalformedRepositoryIdError,
    RemoteError,
    RemoteFetchError,
    RemoteUnavailableError,
    WorkflowNotFoundError,
)
from envsync.metrics import GITHUB_REQUEST_LATENCY
from envsync.schemas import (
    APIResponse,
    GitHubUser,
    RemoteEnvironment,
    RemoteEnvironmentInfo,
    RemoteSecret,
    RemoteVariable,
)

logger = logging.getLogger(__name__)


def parse_repository_id(repository: str) -> Tuple[str, str]:
    """Split ``owner/repo`` on the first slash; both parts must be non-empty."""
    owner, sep, repo = (repository or "").partition("/")
    if not sep or not owner or not repo or "/" in repo:
        raise MalformedRepositoryIdError(f"Repository must look like 'owner/repo', got '{repository}'")
    return owner, repo


def _repo_path(owner: str, repo: str) -> str:
    return f"/repos/{quote(owner, safe='')}/{quote(repo, safe='')}"


def _env_path(owner: str, repo: str, env: str) -> str:
    # имя окружения может содержать "/" и пробелы, GitHub ждёт его закодированным
    return f"{_repo_path(owner, repo)}/environments/{quote(env, safe='')}"


_SEPARATORS = re.compile(r"[\s_-]+")


def _normalize_workflow_name(value: str) -> str:
    """Lowercase and fold runs of spaces, "-" and "_" into one space."""
    return _SEPARATORS.sub(" ", value.strip().lower()).strip()


class GitHubClient:
    """Minimal GitHub REST v3 client for repository environments.

    The token is not bound to the client: each call takes the operator's PAT,
    the shared ``httpx.AsyncClient`` only carries base_url/limits.
    """

    def __init__(self, http: httpx.AsyncClient):
        self.http = http  # base_url=settings.GITHUB_API_URL

    # ---------- low-level ----------
    @staticmethod
    def _headers(token: str, *, json_body: bool = False) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {token}",
            "Accept": settings.GITHUB_ACCEPT,
        }
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    @staticmethod
    def _error_message(r: httpx.Response) -> str:
        try:
            detail = r.json()
        except Exception:
            return r.text or f"HTTP {r.status_code}"
        if isinstance(detail, dict) and detail.get("message"):
            return str(detail["message"])
        return str(detail)

    async def _request(self, method: str, url: str, token: str, **kwargs) -> httpx.Response:
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("HTTP %s %s", method, url)
        headers = self._headers(token, json_body="content" in kwargs)
        start = perf_counter()
        try:
            r = await self.http.request(
                method, url, headers=headers, timeout=settings.REQUEST_TIMEOUT_S, **kwargs
            )
        except httpx.TimeoutException as e:
            logger.warning("HTTP %s %s -> timeout", method, url)
            raise RemoteUnavailableError("GitHub API timed out") from e
        except httpx.TransportError as e:
            logger.warning("HTTP %s %s -> transport error: %s", method, url, e)
            raise RemoteUnavailableError(f"GitHub API unreachable: {e}") from e
        finally:
            GITHUB_REQUEST_LATENCY.labels(method=method).observe(perf_counter() - start)
        if r.status_code >= 400:
            try:
                body = r.text
            except Exception:
                body = "<no body>"
            logger.warning("HTTP %s %s -> %s; body: %s", method, url, r.status_code, body[:1000])
        else:
            logger.debug("HTTP %s %s -> %s", method, url, r.status_code)
        return r

    async def _paginated_get(
        self,
        url: str,
        token: str,
        item_key: str,
        *,
        error_cls: type = RemoteFetchError,
        not_found_empty: bool = False,
    ) -> List[Dict[str, Any]]:
        """Collect ``item_key`` lists across pages following ``Link: rel="next"``."""
        per_page = max(1, min(int(settings.GITHUB_PER_PAGE or 100), 100))
        params: Optional[Dict[str, Any]] = {"per_page": per_page}
        acc: List[Dict[str, Any]] = []
        next_url: Optional[str] = url
        first = True
        while next_url:
            r = await self._request("GET", next_url, token, params=params)
            # 404 означает «пусто» только для первой страницы
            if r.status_code == 404 and not_found_empty and first:
                return []
            if r.status_code >= 400:
                raise error_cls(self._error_message(r), remote_status=r.status_code)
            data = r.json()
            chunk = data.get(item_key) if isinstance(data, dict) else None
            if not isinstance(chunk, list):
                raise error_cls(f"Unexpected response structure from {url}", remote_status=r.status_code)
            acc.extend(item for item in chunk if isinstance(item, dict))
            # next-ссылка уже содержит per_page/page
            next_url = r.links.get("next", {}).get("url")
            params = None
            first = False
        return acc

    # ---------- identity / access ----------
    async def get_user(self, token: str) -> Optional[GitHubUser]:
        """Identity behind ``token``; None when GitHub rejects it."""
        r = await self._request("GET", "/user", token)
        if r.status_code >= 300:
            return None
        data = r.json()
        return GitHubUser(
            login=data.get("login"),
            name=data.get("name"),
            avatar_url=data.get("avatar_url"),
        )

    async def has_repository_access(self, token: str, owner: str, repo: str) -> bool:
        r = await self._request("GET", _repo_path(owner, repo), token)
        return 200 <= r.status_code < 300

    # ---------- environments ----------
    async def list_environments(self, token: str, owner: str, repo: str) -> List[Dict[str, Any]]:
        return await self._paginated_get(_repo_path(owner, repo) + "/environments", token, "environments")

    async def list_environment_variables(self, token: str, owner: str, repo: str, env: str) -> List[RemoteVariable]:
        items = await self._paginated_get(
            _env_path(owner, repo, env) + "/variables",
            token,
            "variables",
            not_found_empty=True,
        )
        return [RemoteVariable(name=v["name"], value=v.get("value") or "") for v in items if v.get("name")]

    async def list_environment_secret_names(self, token: str, owner: str, repo: str, env: str) -> List[RemoteSecret]:
        # GitHub отдаёт только имена секретов, значения недоступны
        items = await self._paginated_get(
            _env_path(owner, repo, env) + "/secrets",
            token,
            "secrets",
            not_found_empty=True,
        )
        return [RemoteSecret(name=s["name"]) for s in items if s.get("name")]

    async def _environment_details(self, token: str, owner: str, repo: str, env: str) -> RemoteEnvironment:
        variables, secrets = await asyncio.gather(
            self.list_environment_variables(token, owner, repo, env),
            self.list_environment_secret_names(token, owner, repo, env),
        )
        logger.debug("environment %s: variables=%s secrets=%s", env, len(variables), len(secrets))
        return RemoteEnvironment(name=env, variables=variables, secrets=secrets)

    async def fetch_environments(
        self, token: str, owner: str, repo: str, *, strict: bool = True
    ) -> RemoteEnvironmentInfo:
        """List environments, then variables and secret names of each, concurrently.

        Every environment is fetched in isolation so one failure never cancels
        the others. In strict mode any failure is then reported as a single
        ``RemoteFetchError``; otherwise the failed environment carries ``error``.
        """
        envs = await self.list_environments(token, owner, repo)
        names = [e["name"] for e in envs if e.get("name")]
        results = await asyncio.gather(
            *(self._environment_details(token, owner, repo, name) for name in names),
            return_exceptions=True,
        )

        out: List[RemoteEnvironment] = []
        failed: List[str] = []
        for name, res in zip(names, results):
            if isinstance(res, BaseException):
                if not isinstance(res, RemoteError):
                    raise res
                logger.warning("environment %s: fetch failed: %s", name, res.detail)
                failed.append(f"{name}: {res.detail}")
                out.append(RemoteEnvironment(name=name, error=str(res.detail)))
            else:
                out.append(res)

        if failed and strict:
            raise RemoteFetchError("Failed to fetch environment information (" + "; ".join(failed) + ")")
        return RemoteEnvironmentInfo(total_count=len(out), environments=out)

    # ---------- workflow dispatch ----------
    @staticmethod
    def _workflow_matches(workflow: Dict[str, Any], wanted: str) -> bool:
        wanted = _normalize_workflow_name(wanted)
        name = _normalize_workflow_name(workflow.get("name") or "")
        stem = _normalize_workflow_name(PurePosixPath(workflow.get("path") or "").stem)
        return name == wanted or stem == wanted

    async def find_workflow(self, token: str, owner: str, repo: str, wanted: str) -> Dict[str, Any]:
        workflows = await self._paginated_get(
            _repo_path(owner, repo) + "/actions/workflows",
            token,
            "workflows",
            error_cls=DispatchFailedError,
        )
        for wf in workflows:
            if self._workflow_matches(wf, wanted):
                return wf
        raise WorkflowNotFoundError(f"Workflow '{wanted}' not found in {owner}/{repo}")

    async def dispatch_workflow(
        self,
        token: str,
        owner: str,
        repo: str,
        structure: Dict[str, Any],
        *,
        workflow: Optional[str] = None,
        ref: Optional[str] = None,
    ) -> APIResponse:
        wanted = workflow or settings.DISPATCH_WORKFLOW
        wf = await self.find_workflow(token, owner, repo, wanted)
        body = {
            "ref": ref or settings.DISPATCH_REF,
            "inputs": {
                "pat": token,
                "repository": f"{owner}/{repo}",
                # workflow inputs must be strings
                "structure": json.dumps(structure),
            },
        }
        logger.info(
            "dispatch workflow: repo=%s/%s workflow_id=%s ref=%s environments=%s",
            owner, repo, wf.get("id"), body["ref"], list(structure),
        )
        r = await self._request(
            "POST",
            _repo_path(owner, repo) + f"/actions/workflows/{wf['id']}/dispatches",
            token,
            content=json.dumps(body),
        )
        if r.status_code >= 300:
            raise DispatchFailedError(self._error_message(r), remote_status=r.status_code)
        return APIResponse(
            statusCode=r.status_code,
            body={"message": "GitHub Action triggered successfully", "workflow_id": wf.get("id")},
        )
