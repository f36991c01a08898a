"""Contributor attribution models.

CommitEvent is one authorship observation read from GitHub commit history.
ContributorRecord is the aggregated per-identity summary returned to callers;
its wire field names (id, html_url, contributions, last_commit_date) are what
the docs frontend renders.
"""

from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class CommitEvent(BaseModel):
    """Single commit-authorship event for one file path."""

    author_identity: Optional[Union[int, str]] = None
    author_login: Optional[str] = None
    author_avatar: Optional[str] = None
    author_profile: Optional[str] = None
    committed_at: Optional[str] = None


class ContributorRecord(BaseModel):
    """Aggregated contributor for one documentation source file."""

    model_config = ConfigDict(populate_by_name=True)

    identity_id: Union[int, str] = Field(alias="id")
    login: str
    avatar_url: str
    profile_url: str = Field(alias="html_url")
    contribution_count: int = Field(default=1, ge=1, alias="contributions")
    last_activity_timestamp: Optional[str] = Field(default=None, alias="last_commit_date")

    def to_public(self) -> dict:
        """Serialize with wire names; last_commit_date omitted when unknown."""
        return self.model_dump(by_alias=True, exclude_none=True)


class RepositoryContributor(BaseModel):
    """Repository-wide contributor as reported by GET /repos/{owner}/{repo}/contributors."""

    id: int
    login: str
    avatar_url: str
    html_url: str
    contributions: int
    type: str = "User"
