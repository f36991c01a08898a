"""Map a docs page id (e.g. "get-started/1-git-and-github") to repository file paths."""

from __future__ import annotations

from dataclasses import dataclass

CONTENT_EXTENSION = ".mdx"
INDEX_FILE = "index.mdx"


class InvalidDocPath(ValueError):
    pass


@dataclass(frozen=True)
class DocPathCandidates:
    doc_path: str
    primary: str
    fallback: str

    def ordered(self) -> tuple[str, str]:
        return (self.primary, self.fallback)


def normalize_doc_path(doc_path: str | None) -> str:
    """Strip surrounding slashes/whitespace and reject empty or traversing ids."""
    value = (doc_path or "").strip().strip("/")
    if not value:
        raise InvalidDocPath("docPath parameter is required")
    segments = value.split("/")
    if any(seg in ("", ".", "..") for seg in segments) or "\\" in value:
        raise InvalidDocPath("docPath must be a relative document id")
    return value


def candidate_paths(doc_path: str | None, docs_root: str = "content/docs") -> DocPathCandidates:
    """Primary is the page file itself; fallback is the section index for the same id."""
    value = normalize_doc_path(doc_path)
    root = docs_root.strip("/")
    prefix = f"{root}/" if root else ""
    stem = value[: -len(CONTENT_EXTENSION)] if value.endswith(CONTENT_EXTENSION) else value
    return DocPathCandidates(
        doc_path=value,
        primary=f"{prefix}{stem}{CONTENT_EXTENSION}",
        fallback=f"{prefix}{stem}/{INDEX_FILE}",
    )
