"""Contributor attribution for docs pages: primary lookup, section-index fallback.

Upstream failures are classified inside the GitHub client; this layer turns
them into an AttributionResult value so the router handles every kind
explicitly instead of relying on exception propagation.
"""

from __future__ import annotations

import logging
import time
from contextlib import aclosing
from typing import Optional

from wiki_api.models.attribution import AttributionErrorKind, AttributionResult
from wiki_api.models.contributor import ContributorRecord, RepositoryContributor
from wiki_api.models.repository import RepositoryResult
from wiki_api.services.attribution_cache import AttributionCache
from wiki_api.services.contributor_aggregator import aggregate
from wiki_api.services.doc_path_resolver import InvalidDocPath, candidate_paths
from wiki_api.services.github_client import CommitHistoryFetcher, GitHubClient, GitHubError

logger = logging.getLogger(__name__)


def _repository_record(row: RepositoryContributor) -> ContributorRecord:
    return ContributorRecord(
        identity_id=row.id,
        login=row.login,
        avatar_url=row.avatar_url,
        profile_url=row.html_url,
        contribution_count=max(1, row.contributions),
    )


class AttributionService:
    def __init__(
        self,
        fetcher: CommitHistoryFetcher,
        owner: str,
        repo: str,
        docs_root: str = "content/docs",
        cache: Optional[AttributionCache] = None,
        client: Optional[GitHubClient] = None,
        upstream_enabled: bool = True,
    ) -> None:
        self._fetcher = fetcher
        self._owner = owner
        self._repo = repo
        self._docs_root = docs_root
        self._cache = cache if cache is not None else AttributionCache(ttl_seconds=0)
        self._client = client
        self._upstream_enabled = upstream_enabled

    @property
    def cache(self) -> AttributionCache:
        return self._cache

    async def contributors_for_path(self, path: str) -> list[ContributorRecord]:
        """Aggregate history for one repository file; empty when the file never existed."""
        async with aclosing(self._fetcher.fetch_events(self._owner, self._repo, path)) as stream:
            events = [event async for event in stream]
        return aggregate(events)

    async def resolve(self, doc_path: Optional[str]) -> AttributionResult:
        try:
            candidates = candidate_paths(doc_path, docs_root=self._docs_root)
        except InvalidDocPath as exc:
            return AttributionResult.failure(AttributionErrorKind.INVALID_INPUT, str(exc))

        if not self._upstream_enabled:
            logger.warning("contributors_upstream_disabled doc_path=%s reason=no_github_token", candidates.doc_path)
            return AttributionResult.success([])

        cached = self._cache.get(candidates.doc_path)
        if cached is not None:
            source_path, rows = cached
            return AttributionResult.success(rows, source_path=source_path, cached=True)

        start = time.perf_counter()
        try:
            source_path = candidates.primary
            rows = await self.contributors_for_path(candidates.primary)
            if not rows:
                source_path = candidates.fallback
                rows = await self.contributors_for_path(candidates.fallback)
        except GitHubError as exc:
            logger.warning(
                "contributors_lookup_failed doc_path=%s kind=%s status=%s error=%s",
                candidates.doc_path,
                exc.kind.value,
                exc.status_code,
                exc,
            )
            return AttributionResult.failure(exc.kind, str(exc), exc.retry_after_seconds)
        except Exception:
            logger.exception("contributors_lookup_crashed doc_path=%s", candidates.doc_path)
            return AttributionResult.failure(AttributionErrorKind.INTERNAL, "unclassified failure")

        elapsed_ms = (time.perf_counter() - start) * 1000.0
        logger.info(
            "contributors_lookup doc_path=%s source=%s contributors=%s elapsed_ms=%.2f",
            candidates.doc_path,
            source_path,
            len(rows),
            elapsed_ms,
        )
        self._cache.put(candidates.doc_path, source_path, rows)
        return AttributionResult.success(rows, source_path=source_path)

    async def repository_contributors(self, limit: Optional[int] = None, hide_bots: bool = True) -> AttributionResult:
        """Repository-wide contributor list, same result contract as resolve()."""
        if self._client is None or not self._upstream_enabled:
            return AttributionResult.success([])
        try:
            rows = await self._client.list_repository_contributors(self._owner, self._repo, hide_bots=hide_bots)
        except GitHubError as exc:
            logger.warning(
                "repository_contributors_failed kind=%s status=%s error=%s",
                exc.kind.value,
                exc.status_code,
                exc,
            )
            return AttributionResult.failure(exc.kind, str(exc), exc.retry_after_seconds)
        except Exception:
            logger.exception("repository_contributors_crashed")
            return AttributionResult.failure(AttributionErrorKind.INTERNAL, "unclassified failure")
        records = [_repository_record(row) for row in rows]
        if limit is not None:
            records = records[:limit]
        return AttributionResult.success(records, source_path=f"{self._owner}/{self._repo}")

    async def repository_metadata(self) -> RepositoryResult:
        """Stars, forks and other repository facts for the docs sidebar."""
        if self._client is None or not self._upstream_enabled:
            return RepositoryResult.failure(AttributionErrorKind.UPSTREAM_NOT_READY, "GitHub access is disabled")
        try:
            repository = await self._client.get_repository(self._owner, self._repo)
        except GitHubError as exc:
            logger.warning(
                "repository_metadata_failed kind=%s status=%s error=%s",
                exc.kind.value,
                exc.status_code,
                exc,
            )
            return RepositoryResult.failure(exc.kind, str(exc), exc.retry_after_seconds)
        except Exception:
            logger.exception("repository_metadata_crashed")
            return RepositoryResult.failure(AttributionErrorKind.INTERNAL, "unclassified failure")
        return RepositoryResult.success(repository)
