"""GitHub API client and commit-history fetchers.

Async REST/GraphQL wrapper with:
- optional token auth (GITHUB_TOKEN); unauthenticated mode gets a lower quota
- quota exhaustion surfaced immediately as GitHubQuotaExhausted (no sleep, no retry)
- basic ETag conditional requests + size-bounded in-memory response cache for REST GETs
- pydantic validation of every response shape; malformed data is never coerced

Two CommitHistoryFetcher implementations page through a file's history:
RestCommitHistoryFetcher (page index) and GraphQLCommitHistoryFetcher (cursor).
"""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from typing import Any, AsyncIterator, Optional, Protocol, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field, HttpUrl, ValidationError

from wiki_api.config import AttributionSettings
from wiki_api.models.attribution import AttributionErrorKind
from wiki_api.models.contributor import CommitEvent, RepositoryContributor
from wiki_api.models.repository import RepositoryMetadata
from wiki_api.services.contributor_aggregator import IdentityCounter

logger = logging.getLogger(__name__)

DEFAULT_QUOTA_RETRY_SECONDS = 60
NOT_READY_STATUSES = {202, 204}
DEFAULT_MAX_CACHED_URLS = 512


class GitHubError(RuntimeError):
    """Upstream failure carrying its classification."""

    kind = AttributionErrorKind.UPSTREAM_RESPONSE

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        retry_after_seconds: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.retry_after_seconds = retry_after_seconds


class GitHubNotFound(GitHubError):
    kind = AttributionErrorKind.UPSTREAM_NOT_FOUND


class GitHubQuotaExhausted(GitHubError):
    kind = AttributionErrorKind.UPSTREAM_QUOTA_EXHAUSTED


class GitHubMalformedResponse(GitHubError):
    kind = AttributionErrorKind.UPSTREAM_MALFORMED


class GitHubTransportError(GitHubError):
    kind = AttributionErrorKind.UPSTREAM_TRANSPORT


class GitHubNotReady(GitHubError):
    kind = AttributionErrorKind.UPSTREAM_NOT_READY


def _retry_after_seconds(r: httpx.Response) -> int:
    retry_after = r.headers.get("Retry-After")
    if retry_after and retry_after.strip().isdigit():
        return max(1, int(retry_after.strip()))
    reset = r.headers.get("X-RateLimit-Reset")
    try:
        reset_i = int(reset) if reset is not None else None
    except ValueError:
        reset_i = None
    if reset_i:
        return max(1, reset_i - int(time.time()))
    return DEFAULT_QUOTA_RETRY_SECONDS


def _is_quota_exhausted(r: httpx.Response) -> bool:
    if r.status_code == 429:
        return True
    if r.status_code != 403:
        return False
    if r.headers.get("X-RateLimit-Remaining") == "0":
        return True
    # Secondary rate limits come back as 403 with remaining quota left.
    return "rate limit" in r.text[:500].lower()


# --- response schemas ---


def _url_text(url: Optional[HttpUrl]) -> Optional[str]:
    return str(url) if url is not None else None


class _RestUser(BaseModel):
    id: Union[int, str]
    login: str
    avatar_url: Optional[HttpUrl] = None
    html_url: Optional[HttpUrl] = None


class _RestSignature(BaseModel):
    date: Optional[str] = None


class _RestCommitDetail(BaseModel):
    author: Optional[_RestSignature] = None
    committer: Optional[_RestSignature] = None


class _RestCommit(BaseModel):
    sha: str
    commit: _RestCommitDetail
    author: Optional[_RestUser] = None

    def to_event(self) -> CommitEvent:
        user = self.author
        signature = self.commit.committer or self.commit.author
        return CommitEvent(
            author_identity=user.id if user else None,
            author_login=user.login if user else None,
            author_avatar=_url_text(user.avatar_url) if user else None,
            author_profile=_url_text(user.html_url) if user else None,
            committed_at=signature.date if signature else None,
        )


class _GraphQLUser(BaseModel):
    id: Optional[str] = None
    databaseId: Optional[int] = None
    login: Optional[str] = None
    avatarUrl: Optional[HttpUrl] = None
    url: Optional[HttpUrl] = None


class _GraphQLCommitAuthor(BaseModel):
    user: Optional[_GraphQLUser] = None


class _GraphQLCommitNode(BaseModel):
    author: Optional[_GraphQLCommitAuthor] = None
    committedDate: Optional[str] = None

    def to_event(self) -> CommitEvent:
        user = self.author.user if self.author else None
        if user is None:
            return CommitEvent(committed_at=self.committedDate)
        identity: Optional[Union[int, str]] = user.databaseId if user.databaseId is not None else user.id
        return CommitEvent(
            author_identity=identity,
            author_login=user.login,
            author_avatar=_url_text(user.avatarUrl),
            author_profile=_url_text(user.url),
            committed_at=self.committedDate,
        )


class _GraphQLPageInfo(BaseModel):
    hasNextPage: bool
    endCursor: Optional[str] = None


class _GraphQLHistory(BaseModel):
    pageInfo: _GraphQLPageInfo
    nodes: list[Optional[_GraphQLCommitNode]]


class _GraphQLHead(BaseModel):
    # Empty object when HEAD is not a Commit (fragment did not match).
    history: Optional[_GraphQLHistory] = None


class _GraphQLRepository(BaseModel):
    head: Optional[_GraphQLHead] = None


class _GraphQLHistoryData(BaseModel):
    repository: Optional[_GraphQLRepository] = None


class _GraphQLError(BaseModel):
    model_config = ConfigDict(extra="allow")

    message: str = ""
    type: Optional[str] = None


class _GraphQLEnvelope(BaseModel):
    data: Optional[dict[str, Any]] = None
    errors: list[_GraphQLError] = Field(default_factory=list)


HISTORY_QUERY = """
query($owner: String!, $name: String!, $path: String!, $first: Int!, $after: String) {
  repository(owner: $owner, name: $name) {
    head: object(expression: "HEAD") {
      ... on Commit {
        history(path: $path, first: $first, after: $after) {
          pageInfo {
            hasNextPage
            endCursor
          }
          nodes {
            author {
              user {
                id
                databaseId
                login
                avatarUrl
                url
              }
            }
            committedDate
          }
        }
      }
    }
  }
}
"""


class GitHubClient:
    def __init__(
        self,
        token: Optional[str] = None,
        base_url: str = "https://api.github.com",
        user_agent: str = "oss-wiki-api/1.0",
        timeout: float = 20.0,
        http_client: Optional[httpx.AsyncClient] = None,
        max_cached_urls: int = DEFAULT_MAX_CACHED_URLS,
    ) -> None:
        self._token = (token or "").strip() or None
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": user_agent,
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self._token:
            self._headers["Authorization"] = f"Bearer {self._token}"
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

        # Per-process ETag cache (API pod lifetime): url -> (etag, body), LRU-bounded.
        # Keys embed caller-supplied doc paths.
        self._max_cached_urls = max(1, max_cached_urls)
        self._etag_cache: "OrderedDict[str, tuple[str, Any]]" = OrderedDict()

    @property
    def authenticated(self) -> bool:
        return self._token is not None

    @property
    def closed(self) -> bool:
        return self._http.is_closed

    @property
    def etag_cache_size(self) -> int:
        return len(self._etag_cache)

    def serves(self, token: Optional[str], base_url: str, timeout: float) -> bool:
        """True when this client was built for the same credentials, endpoint and timeout."""
        return (
            self._token == ((token or "").strip() or None)
            and self._base_url == base_url.rstrip("/")
            and self._timeout == timeout
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    def _remember(self, url: str, etag: str, data: Any) -> None:
        self._etag_cache[url] = (etag, data)
        self._etag_cache.move_to_end(url)
        while len(self._etag_cache) > self._max_cached_urls:
            self._etag_cache.popitem(last=False)

    def _url(self, path: str) -> str:
        return path if path.startswith("http") else f"{self._base_url}{path}"

    async def _request(
        self,
        method: str,
        url: str,
        headers: Optional[dict[str, str]] = None,
        json: Optional[dict[str, Any]] = None,
    ) -> httpx.Response:
        h = dict(self._headers)
        if headers:
            h.update(headers)
        try:
            r = await self._http.request(method, url, headers=h, json=json)
        except httpx.TransportError as exc:
            raise GitHubTransportError(f"GitHub transport error for {url}: {exc.__class__.__name__}") from exc

        if _is_quota_exhausted(r):
            retry_after = _retry_after_seconds(r)
            logger.warning(
                "github_quota_exhausted url=%s status=%s retry_after=%s authenticated=%s",
                url,
                r.status_code,
                retry_after,
                self.authenticated,
            )
            raise GitHubQuotaExhausted(
                "GitHub API rate limit exceeded",
                status_code=r.status_code,
                retry_after_seconds=retry_after,
            )
        if r.status_code in (404, 409):
            # 409: repository has no commits yet.
            raise GitHubNotFound(f"GitHub API {r.status_code} for {url}", status_code=r.status_code)
        if r.status_code >= 400:
            raise GitHubError(f"GitHub API error {r.status_code} for {url}: {r.text[:200]}", status_code=r.status_code)
        return r

    @staticmethod
    def _decode(r: httpx.Response, url: str) -> Any:
        try:
            return r.json()
        except ValueError as exc:
            raise GitHubMalformedResponse(f"GitHub returned non-JSON body for {url}", status_code=r.status_code) from exc

    async def get_json(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        """GET JSON for a path or full URL. Uses ETag conditional requests when possible.

        Returns None when GitHub answers 202/204 (statistics still being computed).
        """
        url = str(httpx.URL(self._url(path), params=params)) if params else self._url(path)

        extra_headers: dict[str, str] = {}
        cached = self._etag_cache.get(url)
        if cached is not None:
            extra_headers["If-None-Match"] = cached[0]

        r = await self._request("GET", url, headers=extra_headers)

        if r.status_code == 304:
            cached = self._etag_cache.get(url)
            if cached is not None:
                self._etag_cache.move_to_end(url)
                return cached[1]
            # If cache was lost, retry without condition.
            r = await self._request("GET", url)

        if r.status_code in NOT_READY_STATUSES:
            return None

        data = self._decode(r, url)
        new_etag = r.headers.get("ETag")
        if new_etag:
            self._remember(url, new_etag, data)
        return data

    async def graphql(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        """POST a GraphQL query; returns the `data` object or raises a classified GitHubError."""
        url = self._url("/graphql")
        r = await self._request("POST", url, json={"query": query, "variables": variables})
        try:
            envelope = _GraphQLEnvelope.model_validate(self._decode(r, url))
        except ValidationError as exc:
            raise GitHubMalformedResponse("Unexpected GitHub GraphQL response shape") from exc

        if envelope.errors:
            types = {err.type for err in envelope.errors}
            messages = ", ".join(err.message for err in envelope.errors)
            if "RATE_LIMITED" in types:
                raise GitHubQuotaExhausted(
                    f"GitHub GraphQL rate limit: {messages}",
                    status_code=r.status_code,
                    retry_after_seconds=_retry_after_seconds(r),
                )
            if types == {"NOT_FOUND"}:
                raise GitHubNotFound(f"GitHub GraphQL not found: {messages}", status_code=r.status_code)
            raise GitHubError(f"GitHub GraphQL Error: {messages}", status_code=r.status_code)
        if envelope.data is None:
            raise GitHubMalformedResponse("GitHub GraphQL response has no data")
        return envelope.data

    async def get_repository(self, owner: str, repo: str) -> RepositoryMetadata:
        """Repository metadata. Raises GitHubNotReady while GitHub is still preparing it."""
        try:
            data = await self.get_json(f"/repos/{owner}/{repo}")
        except GitHubNotFound as exc:
            if exc.status_code != 409:
                raise
            raise GitHubNotReady("Repository metadata is not available yet", status_code=409) from exc
        if data is None:
            raise GitHubNotReady("Repository metadata is not available yet")
        try:
            return RepositoryMetadata.model_validate(data)
        except ValidationError as exc:
            raise GitHubMalformedResponse("Unexpected GitHub repository response shape") from exc

    async def list_repository_contributors(
        self,
        owner: str,
        repo: str,
        per_page: int = 100,
        max_pages: int = 5,
        hide_bots: bool = True,
    ) -> list[RepositoryContributor]:
        """List repository contributors ranked by contributions. Caps pages to avoid runaway API usage."""
        per_page = max(1, min(per_page, 100))
        out: list[RepositoryContributor] = []
        for page in range(1, max_pages + 1):
            try:
                data = await self.get_json(
                    f"/repos/{owner}/{repo}/contributors",
                    params={"per_page": per_page, "page": page, "anon": "false"},
                )
            except GitHubNotFound:
                break
            if data is None:
                break
            if not isinstance(data, list):
                raise GitHubMalformedResponse("Unexpected GitHub contributors response shape")
            try:
                rows = [RepositoryContributor.model_validate(item) for item in data]
            except ValidationError as exc:
                raise GitHubMalformedResponse("Unexpected GitHub contributors response shape") from exc
            out.extend(rows)
            if len(data) < per_page:
                break
        if hide_bots:
            out = [row for row in out if row.type != "Bot" and not row.login.lower().endswith("[bot]")]
        return sorted(out, key=lambda row: row.contributions, reverse=True)


class CommitHistoryFetcher(Protocol):
    """Lazy, capped stream of authorship events for one file path."""

    def fetch_events(self, owner: str, repo: str, path: str) -> AsyncIterator[CommitEvent]:
        ...


class RestCommitHistoryFetcher:
    """Linear page-index pagination over GET /repos/{owner}/{repo}/commits?path=."""

    strategy = "rest"

    def __init__(
        self,
        client: GitHubClient,
        per_page: int = 100,
        identity_cap: int = 100,
        max_events: int = 3000,
    ) -> None:
        self._client = client
        self._per_page = per_page
        self._identity_cap = identity_cap
        self._max_events = max_events

    async def fetch_events(self, owner: str, repo: str, path: str) -> AsyncIterator[CommitEvent]:
        identities = IdentityCounter(self._identity_cap)
        examined = 0
        page = 1
        while True:
            try:
                data = await self._client.get_json(
                    f"/repos/{owner}/{repo}/commits",
                    params={"path": path, "per_page": self._per_page, "page": page},
                )
            except GitHubNotFound:
                return
            if data is None:
                return
            if not isinstance(data, list):
                raise GitHubMalformedResponse("Unexpected GitHub commits response shape")
            try:
                commits = [_RestCommit.model_validate(item) for item in data]
            except ValidationError as exc:
                raise GitHubMalformedResponse("Unexpected GitHub commits response shape") from exc

            for commit in commits:
                event = commit.to_event()
                identities.observe(event)
                yield event
            examined += len(commits)

            if len(commits) < self._per_page:
                return
            if identities.reached or examined >= self._max_events:
                logger.warning(
                    "commit_history_capped strategy=rest path=%s identities=%s commits=%s",
                    path,
                    identities.count,
                    examined,
                )
                return
            page += 1


class GraphQLCommitHistoryFetcher:
    """Cursor pagination over the GraphQL Commit.history connection."""

    strategy = "graphql"

    def __init__(
        self,
        client: GitHubClient,
        per_page: int = 100,
        identity_cap: int = 100,
        max_events: int = 3000,
    ) -> None:
        self._client = client
        self._per_page = per_page
        self._identity_cap = identity_cap
        self._max_events = max_events

    async def fetch_events(self, owner: str, repo: str, path: str) -> AsyncIterator[CommitEvent]:
        identities = IdentityCounter(self._identity_cap)
        examined = 0
        cursor: Optional[str] = None
        while True:
            variables: dict[str, Any] = {
                "owner": owner,
                "name": repo,
                "path": path,
                "first": self._per_page,
                "after": cursor,
            }
            try:
                data = await self._client.graphql(HISTORY_QUERY, variables)
            except GitHubNotFound:
                return
            try:
                parsed = _GraphQLHistoryData.model_validate(data)
            except ValidationError as exc:
                raise GitHubMalformedResponse("Unexpected GitHub commit history shape") from exc

            repository = parsed.repository
            history = repository.head.history if repository and repository.head else None
            if history is None:
                return

            for node in history.nodes:
                if node is None:
                    continue
                event = node.to_event()
                identities.observe(event)
                yield event
            examined += len(history.nodes)

            if not history.pageInfo.hasNextPage or not history.pageInfo.endCursor:
                return
            if identities.reached or examined >= self._max_events:
                logger.warning(
                    "commit_history_capped strategy=graphql path=%s identities=%s commits=%s",
                    path,
                    identities.count,
                    examined,
                )
                return
            cursor = history.pageInfo.endCursor


def build_fetcher(client: GitHubClient, settings: AttributionSettings) -> CommitHistoryFetcher:
    """Pick the pagination strategy once, at construction time."""
    if settings.fetch_strategy == "rest":
        return RestCommitHistoryFetcher(client, identity_cap=settings.identity_cap, max_events=settings.max_commits)
    return GraphQLCommitHistoryFetcher(client, identity_cap=settings.identity_cap, max_events=settings.max_commits)
