"""Repository metadata shown next to the contributor list on docs pages."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, HttpUrl

from wiki_api.models.attribution import AttributionError, AttributionErrorKind


class RepositoryLicense(BaseModel):
    key: str
    name: str


class RepositoryOwner(BaseModel):
    id: int
    login: str
    html_url: HttpUrl
    avatar_url: HttpUrl
    type: str


class RepositoryMetadata(BaseModel):
    """Subset of GET /repos/{owner}/{repo}; unknown upstream fields are ignored."""

    id: int
    name: str
    full_name: str
    html_url: HttpUrl
    description: Optional[str] = None
    stargazers_count: int
    forks_count: int
    open_issues_count: int
    watchers_count: int
    language: Optional[str] = None
    license: Optional[RepositoryLicense] = None
    owner: RepositoryOwner
    created_at: str
    updated_at: str
    pushed_at: str

    def to_public(self) -> dict:
        return self.model_dump(mode="json")


class RepositoryResult(BaseModel):
    """Same tagged contract as AttributionResult, carrying repository metadata."""

    repository: Optional[RepositoryMetadata] = None
    error: Optional[AttributionError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, repository: RepositoryMetadata) -> "RepositoryResult":
        return cls(repository=repository)

    @classmethod
    def failure(
        cls,
        kind: AttributionErrorKind,
        message: str = "",
        retry_after_seconds: Optional[int] = None,
    ) -> "RepositoryResult":
        return cls(error=AttributionError(kind=kind, message=message, retry_after_seconds=retry_after_seconds))
