"""Error taxonomy shared by the store, the template layer and the GitHub sync.

Every error carries the HTTP status the API answers with; the handler in
``envsync.main`` renders them as ``{"error": ..., "detail": ...}``.
"""
from __future__ import annotations

from typing import Any, Optional


class EnvSyncError(Exception):
    status_code: int = 400

    def __init__(self, detail: Any = None):
        self.detail = detail if detail is not None else (self.__doc__ or self.__class__.__name__).strip()
        super().__init__(self.detail)


# ---------- local validation ----------
class ValidationError(EnvSyncError):
    """Invalid local input."""
    status_code = 422


class DuplicateNameError(ValidationError):
    """Environment already exists."""
    status_code = 409


class EmptyNameError(ValidationError):
    """Please enter an environment name."""


class IndexOutOfRangeError(ValidationError):
    """Index out of range."""
    status_code = 404


class BlankFieldError(ValidationError):
    """Field must not be blank."""


class MinimumEntriesError(ValidationError):
    """Collection must keep at least one entry."""
    status_code = 409


class MalformedRepositoryIdError(ValidationError):
    """Repository must look like 'owner/repo'."""


class TemplateFormatError(ValidationError):
    """Invalid template document."""


class TemplateNotFoundError(ValidationError):
    """Template not found."""
    status_code = 404


# ---------- auth / preconditions ----------
class AuthError(EnvSyncError):
    status_code = 401


class InvalidCredentialError(AuthError):
    """Invalid Personal Access Token."""


class PreconditionError(EnvSyncError):
    """Operation is not allowed in the current sync state."""
    status_code = 412


# ---------- remote ----------
class RemoteError(EnvSyncError):
    """GitHub API request failed."""
    status_code = 502

    def __init__(self, detail: Any = None, remote_status: Optional[int] = None):
        super().__init__(detail)
        self.remote_status = remote_status


class RemoteUnavailableError(RemoteError):
    """GitHub API is unreachable or timed out."""
    status_code = 504


class RemoteFetchError(RemoteError):
    """Failed to fetch environment information."""


class DispatchFailedError(RemoteError):
    """Failed to trigger GitHub Action."""


class WorkflowNotFoundError(DispatchFailedError):
    """Update-environment workflow not found in repository."""
    status_code = 404
