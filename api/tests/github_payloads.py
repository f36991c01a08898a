"""Canned GitHub REST/GraphQL payloads shared by the attribution tests."""

from __future__ import annotations

from typing import Optional

from wiki_api.models.contributor import CommitEvent

GITHUB_API = "https://api.github.com"
GRAPHQL_URL = f"{GITHUB_API}/graphql"
COMMITS_URL = f"{GITHUB_API}/repos/owner/repo/commits"


def make_event(login: Optional[str], identity=None, committed_at: Optional[str] = None) -> CommitEvent:
    return CommitEvent(
        author_identity=identity,
        author_login=login,
        author_avatar=f"https://avatars.githubusercontent.com/{login}" if login else None,
        author_profile=f"https://github.com/{login}" if login else None,
        committed_at=committed_at,
    )


def rest_commit(login: Optional[str], user_id: int = 1, date: str = "2025-01-01T00:00:00Z") -> dict:
    author = None
    if login is not None:
        author = {
            "id": user_id,
            "login": login,
            "avatar_url": f"https://avatars.githubusercontent.com/u/{user_id}",
            "html_url": f"https://github.com/{login}",
        }
    return {
        "sha": f"sha-{login}-{date}",
        "commit": {"author": {"date": date}, "committer": {"date": date}},
        "author": author,
    }


def graphql_node(login: Optional[str], database_id: Optional[int] = None, date: str = "2025-01-01T00:00:00Z") -> dict:
    if login is None:
        return {"author": {"user": None}, "committedDate": date}
    return {
        "author": {
            "user": {
                "id": f"U_{login}",
                "databaseId": database_id,
                "login": login,
                "avatarUrl": f"https://avatars.githubusercontent.com/u/{login}",
                "url": f"https://github.com/{login}",
            }
        },
        "committedDate": date,
    }


def graphql_history(nodes: list[dict], has_next: bool = False, end_cursor: Optional[str] = None) -> dict:
    return {
        "data": {
            "repository": {
                "head": {
                    "history": {
                        "pageInfo": {"hasNextPage": has_next, "endCursor": end_cursor},
                        "nodes": nodes,
                    }
                }
            }
        }
    }


def repository_payload(**overrides) -> dict:
    payload = {
        "id": 42,
        "name": "repo",
        "full_name": "owner/repo",
        "html_url": "https://github.com/owner/repo",
        "description": "Docs for everyone",
        "stargazers_count": 120,
        "forks_count": 30,
        "open_issues_count": 4,
        "watchers_count": 120,
        "language": "MDX",
        "license": {"key": "mit", "name": "MIT License"},
        "owner": {
            "id": 7,
            "login": "owner",
            "html_url": "https://github.com/owner",
            "avatar_url": "https://avatars.githubusercontent.com/u/7?v=4",
            "type": "User",
        },
        "created_at": "2024-01-01T00:00:00Z",
        "updated_at": "2025-01-01T00:00:00Z",
        "pushed_at": "2025-01-02T00:00:00Z",
        "default_branch": "main",
    }
    payload.update(overrides)
    return payload
