from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field, field_validator

EntryKind = Literal["vars", "secrets"]
EntryField = Literal["key", "value"]


class KeyValue(BaseModel):
    key: str = ""
    value: str = ""


class Environment(BaseModel):
    name: str
    vars: List[KeyValue] = Field(default_factory=list)
    secrets: List[KeyValue] = Field(default_factory=list)


class EnvironmentShape(BaseModel):
    """One environment inside a template/current structure (key -> value maps)."""
    vars: Dict[str, str] = Field(default_factory=dict)
    secrets: Dict[str, str] = Field(default_factory=dict)

    @field_validator("vars", "secrets", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return {k: "" if val is None else val for k, val in v.items()}
        return v


# env name -> shape; dict order is the environment order
Structure = Dict[str, EnvironmentShape]


class TemplateDocument(BaseModel):
    name: str
    description: Optional[str] = None
    version: Optional[str] = None
    author: Optional[str] = None
    structure: Dict[str, EnvironmentShape] = Field(default_factory=dict)


class EnvironmentInfo(BaseModel):
    vars: Dict[str, str] = Field(default_factory=dict)
    secretKeys: List[str] = Field(default_factory=list)


class GitHubUser(BaseModel):
    login: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None


class APIResponse(BaseModel):
    statusCode: int
    body: Any = None


class RemoteVariable(BaseModel):
    name: str
    value: str = ""


class RemoteSecret(BaseModel):
    name: str


class RemoteEnvironment(BaseModel):
    name: str
    variables: List[RemoteVariable] = Field(default_factory=list)
    secrets: List[RemoteSecret] = Field(default_factory=list)
    # заполняется только в нестрогом режиме, когда окружение не удалось прочитать
    error: Optional[str] = None


class RemoteEnvironmentInfo(BaseModel):
    total_count: int = 0
    environments: List[RemoteEnvironment] = Field(default_factory=list)


# ---------- request payloads ----------
class AddEnvironmentRequest(BaseModel):
    name: str


class UpdateEntryRequest(BaseModel):
    field: EntryField
    value: str


class SaveTemplateRequest(BaseModel):
    name: str
    description: Optional[str] = None
    version: Optional[str] = None
    author: Optional[str] = None


class CredentialRequest(BaseModel):
    token: str


class RepositoryRequest(BaseModel):
    repository: str
