"""Extraction and resolution of ``@path/to/file`` references in markdown."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Tuple

# Lowercase start plus a slash keeps annotations like @Service or @GetMapping out.
REFERENCE_RE = re.compile(r"@[a-z][a-zA-Z0-9_-]*/[a-zA-Z0-9/_.-]+")
FENCE_PREFIX = "```"
GITHUB_LINK_TEMPLATE = r"\[@[^\]]*{path}[^\]]*\]\(https://github\.com/[^)]+\)"


@dataclass(frozen=True)
class Reference:
    token: str

    @property
    def path(self) -> str:
        return self.token[1:]

    @property
    def first_segment(self) -> str:
        return self.path.split("/", 1)[0]


@dataclass(frozen=True)
class Resolution:
    reference: Reference
    target: Path | None
    tried: Tuple[Path, ...]
    cross_repo: bool = False

    @property
    def ok(self) -> bool:
        return self.target is not None


def strip_fenced_code_blocks(text: str) -> str:
    """Drop every line inside (and including) ``` fences."""
    kept: List[str] = []
    in_block = False
    for line in text.splitlines():
        if line.startswith(FENCE_PREFIX):
            in_block = not in_block
            continue
        if not in_block:
            kept.append(line)
    return "\n".join(kept)


def extract_references(text: str) -> list[Reference]:
    """Unique references outside fenced code, sorted by token."""
    tokens = set(REFERENCE_RE.findall(strip_fenced_code_blocks(text)))
    return [Reference(token) for token in sorted(tokens)]


def is_placeholder(reference: Reference, placeholders: Iterable[str]) -> bool:
    return reference.path in set(placeholders)


def is_illustrative(reference: Reference, text: str) -> bool:
    """Heuristic: backticked, preceded by "Use ", or on an "Example" line."""
    path = reference.path
    if f"`@{path}`" in text or f"Use @{path}" in text:
        return True
    return re.search(rf"Example.*@{re.escape(path)}", text) is not None


def cross_repo_url_counts(reference: Reference, text: str) -> tuple[int, int]:
    """Return (occurrences, occurrences inside a GitHub markdown link)."""
    total = text.count(reference.token)
    pattern = GITHUB_LINK_TEMPLATE.format(path=re.escape(reference.path))
    with_url = len(re.findall(pattern, text))
    return total, with_url


def candidate_paths(
    reference: Reference, file_dir: Path, repo_root: Path
) -> Tuple[Path, ...]:
    return (
        file_dir / reference.path,
        repo_root / reference.path,
        repo_root.parent / reference.path,
    )


def resolve_reference(
    reference: Reference, file_dir: Path, repo_root: Path
) -> Resolution:
    """First existing candidate wins: file dir, repo root, workspace parent."""
    tried = candidate_paths(reference, file_dir, repo_root)
    for index, candidate in enumerate(tried):
        if candidate.exists():
            return Resolution(reference, candidate, tried, cross_repo=index == 2)
    return Resolution(reference, None, tried)
