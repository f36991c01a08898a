"""Fold commit-authorship events into ranked contributor records.

Dedup is identity-first with a lower-cased login fallback. Identity-less events
are folded in after all identified ones: into the identity that owns their
login when exactly one does, otherwise onto a login-keyed record. An account
whose login was renamed upstream keeps its identity, but identity-less events
under the old login stay separate; accepted approximation.
"""

from __future__ import annotations

from typing import Iterable, Optional

from wiki_api.models.contributor import CommitEvent, ContributorRecord

GITHUB_WEB = "https://github.com"


def _normalized_login(event: CommitEvent) -> str:
    return (event.author_login or "").strip().lower()


def _has_identity(event: CommitEvent) -> bool:
    return event.author_identity is not None and str(event.author_identity).strip() != ""


def identity_key(event: CommitEvent) -> Optional[str]:
    """Dedup key for an event, or None when nothing attributable is present."""
    if _has_identity(event):
        return f"id:{event.author_identity}"
    login = _normalized_login(event)
    if login:
        return f"login:{login}"
    return None


def is_attributable(event: CommitEvent) -> bool:
    # Deleted or anonymized accounts come back without a linked user.
    return identity_key(event) is not None and bool(_normalized_login(event))


def _new_record(event: CommitEvent) -> ContributorRecord:
    login = (event.author_login or "").strip()
    identity = event.author_identity if _has_identity(event) else f"login:{login.lower()}"
    return ContributorRecord(
        identity_id=identity,
        login=login,
        avatar_url=event.author_avatar or f"{GITHUB_WEB}/{login}.png",
        profile_url=event.author_profile or f"{GITHUB_WEB}/{login}",
        contribution_count=1,
        last_activity_timestamp=event.committed_at,
    )


def _latest(current: Optional[str], candidate: Optional[str]) -> Optional[str]:
    # Fixed-width ISO-8601 sorts lexicographically.
    if not candidate:
        return current
    if not current or candidate > current:
        return candidate
    return current


def _fold(records: dict[str, ContributorRecord], key: str, event: CommitEvent) -> None:
    record = records.get(key)
    if record is None:
        records[key] = _new_record(event)
        return
    record.contribution_count += 1
    record.last_activity_timestamp = _latest(record.last_activity_timestamp, event.committed_at)


def aggregate(events: Iterable[CommitEvent]) -> list[ContributorRecord]:
    """Deduplicate events into contributor records ranked by contribution count.

    The set of (identity, count, latest timestamp) triples does not depend on
    event order. Login-keyed records get the synthesized id ``login:<login>``.
    """
    records: dict[str, ContributorRecord] = {}
    owners: dict[str, set[str]] = {}
    orphans: dict[str, list[CommitEvent]] = {}

    for event in events:
        if not is_attributable(event):
            continue
        login = _normalized_login(event)
        if not _has_identity(event):
            orphans.setdefault(login, []).append(event)
            continue
        key = f"id:{event.author_identity}"
        owners.setdefault(login, set()).add(key)
        _fold(records, key, event)

    for login, pending in orphans.items():
        owned = owners.get(login, set())
        # Two accounts sharing a login: the owner is ambiguous, keep them apart.
        key = next(iter(owned)) if len(owned) == 1 else f"login:{login}"
        for event in pending:
            _fold(records, key, event)

    # sorted() is stable: ties keep insertion order.
    return sorted(records.values(), key=lambda r: r.contribution_count, reverse=True)


class IdentityCounter:
    """Tracks distinct identities seen while paging, for the upstream safety cap."""

    def __init__(self, cap: int) -> None:
        self.cap = cap
        self._seen: set[str] = set()

    def observe(self, event: CommitEvent) -> None:
        key = identity_key(event)
        if key is not None and is_attributable(event):
            self._seen.add(key)

    @property
    def count(self) -> int:
        return len(self._seen)

    @property
    def reached(self) -> bool:
        return len(self._seen) >= self.cap
