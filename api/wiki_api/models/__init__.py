"""Pydantic models."""

from wiki_api.models.attribution import AttributionError, AttributionErrorKind, AttributionResult
from wiki_api.models.contributor import CommitEvent, ContributorRecord, RepositoryContributor
from wiki_api.models.error import ErrorDetail
from wiki_api.models.repository import RepositoryLicense, RepositoryMetadata, RepositoryOwner, RepositoryResult

__all__ = [
    "AttributionError",
    "AttributionErrorKind",
    "AttributionResult",
    "CommitEvent",
    "ContributorRecord",
    "ErrorDetail",
    "RepositoryContributor",
    "RepositoryLicense",
    "RepositoryMetadata",
    "RepositoryOwner",
    "RepositoryResult",
]
