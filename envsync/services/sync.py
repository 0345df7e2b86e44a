from __future__ import annotations

import enum
import logging
from typing import Any, Dict, Optional

from envsync.core.errors import (
    DispatchFailedError,
    InvalidCredentialError,
    PreconditionError,
    RemoteError,
    RemoteFetchError,
)
from envsync.metrics import REMOTE_ENVIRONMENTS_FETCHED, SYNC_OPERATIONS_TOTAL
from envsync.schemas import APIResponse, GitHubUser, RemoteEnvironmentInfo
from envsync.services.github import GitHubClient, parse_repository_id

logger = logging.getLogger(__name__)


class SyncState(str, enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    CREDENTIAL_VALID = "credential_valid"
    REPO_ACCESS_UNKNOWN = "repo_access_unknown"
    REPO_ACCESS_GRANTED = "repo_access_granted"
    REPO_ACCESS_DENIED = "repo_access_denied"
    DISPATCHED = "dispatched"


class RemoteSync:
    """Operator session against GitHub: credential -> repository access -> dispatch.

    Steps are composed explicitly by the caller; validating a credential never
    triggers the access check on its own.
    """

    def __init__(self, github: GitHubClient):
        self.github = github
        self.state = SyncState.UNAUTHENTICATED
        self.token: Optional[str] = None
        self.user: Optional[GitHubUser] = None
        self.repository: Optional[str] = None
        self.has_repo_access: Optional[bool] = None
        self.last_response: Optional[APIResponse] = None

    def _transition(self, new_state: SyncState) -> None:
        if new_state != self.state:
            logger.info("sync state: %s -> %s", self.state.value, new_state.value)
        self.state = new_state

    def _after_access_reset(self) -> None:
        self.has_repo_access = None
        if self.user is None:
            self._transition(SyncState.UNAUTHENTICATED)
        elif self.repository:
            self._transition(SyncState.REPO_ACCESS_UNKNOWN)
        else:
            self._transition(SyncState.CREDENTIAL_VALID)

    # ---------- credential ----------
    async def validate_credential(self, token: str) -> GitHubUser:
        if not token or not token.strip():
            raise InvalidCredentialError("Personal Access Token is empty")
        try:
            user = await self.github.get_user(token)
        except RemoteError:
            SYNC_OPERATIONS_TOTAL.labels(operation="validate_credential", result="error").inc()
            raise
        if user is None:
            SYNC_OPERATIONS_TOTAL.labels(operation="validate_credential", result="invalid").inc()
            self.token = None
            self.user = None
            self.has_repo_access = None
            self._transition(SyncState.UNAUTHENTICATED)
            raise InvalidCredentialError()

        SYNC_OPERATIONS_TOTAL.labels(operation="validate_credential", result="ok").inc()
        self.token = token
        self.user = user
        logger.info("credential valid: login=%s", user.login)
        self._after_access_reset()
        return user

    # ---------- repository ----------
    def set_repository(self, repository: str) -> None:
        parse_repository_id(repository)
        self.repository = repository
        self._after_access_reset()

    async def check_repository_access(
        self, token: Optional[str] = None, repository: Optional[str] = None
    ) -> bool:
        """True when the repository is readable with the token.

        Denial, including network failure, is a normal ``False`` outcome.
        """
        repository = repository if repository is not None else self.repository
        if not repository:
            raise PreconditionError("Repository is not set")
        owner, repo = parse_repository_id(repository)
        token = token or self.token
        if not token:
            raise PreconditionError("Personal Access Token is not set")

        try:
            granted = await self.github.has_repository_access(token, owner, repo)
        except RemoteError as e:
            logger.warning("repository access check failed for %s: %s", repository, e.detail)
            granted = False

        SYNC_OPERATIONS_TOTAL.labels(
            operation="check_repository_access", result="granted" if granted else "denied"
        ).inc()
        if repository == self.repository:
            self.has_repo_access = granted
            if self.user is not None:
                self._transition(SyncState.REPO_ACCESS_GRANTED if granted else SyncState.REPO_ACCESS_DENIED)
        logger.info("repository access %s: %s", "granted" if granted else "denied", repository)
        return granted

    # ---------- dispatch ----------
    def _require_dispatch_ready(self) -> None:
        if not self.token or self.user is None:
            raise PreconditionError("Please validate your GitHub token first")
        if not self.repository:
            raise PreconditionError("Please set the repository first")
        if self.has_repo_access is not True:
            raise PreconditionError("Repository access has not been verified")

    async def dispatch(self, structure: Dict[str, Any]) -> APIResponse:
        self._require_dispatch_ready()
        owner, repo = parse_repository_id(self.repository)
        try:
            response = await self.github.dispatch_workflow(self.token, owner, repo, structure)
        except DispatchFailedError:
            SYNC_OPERATIONS_TOTAL.labels(operation="dispatch", result="error").inc()
            raise
        except RemoteError as e:
            SYNC_OPERATIONS_TOTAL.labels(operation="dispatch", result="error").inc()
            raise DispatchFailedError(e.detail, remote_status=e.remote_status) from e

        SYNC_OPERATIONS_TOTAL.labels(operation="dispatch", result="ok").inc()
        # last-write-wins
        self.last_response = response
        self._transition(SyncState.DISPATCHED)
        return response

    # ---------- read-back ----------
    async def fetch_remote_environments(
        self,
        token: Optional[str] = None,
        repository: Optional[str] = None,
        *,
        strict: bool = True,
    ) -> RemoteEnvironmentInfo:
        token = token or self.token
        repository = repository or self.repository
        if not token:
            raise PreconditionError("Personal Access Token is not set")
        if not repository:
            raise PreconditionError("Repository is not set")
        owner, repo = parse_repository_id(repository)

        try:
            info = await self.github.fetch_environments(token, owner, repo, strict=strict)
        except RemoteFetchError:
            SYNC_OPERATIONS_TOTAL.labels(operation="fetch_environments", result="error").inc()
            raise
        except RemoteError as e:
            SYNC_OPERATIONS_TOTAL.labels(operation="fetch_environments", result="error").inc()
            raise RemoteFetchError(e.detail, remote_status=e.remote_status) from e

        SYNC_OPERATIONS_TOTAL.labels(operation="fetch_environments", result="ok").inc()
        for env in info.environments:
            REMOTE_ENVIRONMENTS_FETCHED.labels(result="error" if env.error else "ok").inc()
        return info

    def status(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "user": self.user.model_dump() if self.user else None,
            "repository": self.repository,
            "has_repo_access": self.has_repo_access,
            "last_response": self.last_response.model_dump() if self.last_response else None,
        }
