"""Outcome of one attribution lookup: contributors or a classified failure."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from wiki_api.models.contributor import ContributorRecord


class AttributionErrorKind(str, Enum):
    LOCAL_RATE_LIMITED = "local_rate_limited"
    UPSTREAM_QUOTA_EXHAUSTED = "upstream_quota_exhausted"
    UPSTREAM_NOT_FOUND = "upstream_not_found"
    UPSTREAM_NOT_READY = "upstream_not_ready"
    UPSTREAM_MALFORMED = "upstream_malformed"
    UPSTREAM_TRANSPORT = "upstream_transport"
    UPSTREAM_RESPONSE = "upstream_response"
    INVALID_INPUT = "invalid_input"
    INTERNAL = "internal"


class AttributionError(BaseModel):
    kind: AttributionErrorKind
    message: str = ""
    retry_after_seconds: Optional[int] = None


class AttributionResult(BaseModel):
    """Tagged result. Exactly one of contributors/error is meaningful: check ok first."""

    contributors: list[ContributorRecord] = Field(default_factory=list)
    error: Optional[AttributionError] = None
    source_path: Optional[str] = None
    cached: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(
        cls,
        contributors: list[ContributorRecord],
        source_path: Optional[str] = None,
        cached: bool = False,
    ) -> "AttributionResult":
        return cls(contributors=contributors, source_path=source_path, cached=cached)

    @classmethod
    def failure(
        cls,
        kind: AttributionErrorKind,
        message: str = "",
        retry_after_seconds: Optional[int] = None,
    ) -> "AttributionResult":
        return cls(error=AttributionError(kind=kind, message=message, retry_after_seconds=retry_after_seconds))
