"""Tests for markdown reference extraction and resolution."""

from __future__ import annotations

from pathlib import Path

from budgetops.core.references import (
    Reference,
    cross_repo_url_counts,
    extract_references,
    is_illustrative,
    is_placeholder,
    resolve_reference,
    strip_fenced_code_blocks,
)

DOC = """# Service notes

See @docs/architecture.md and @nginx/nginx.dev.conf for details.
Annotations such as @Service or @GetMapping are ignored, as are bare @mentions.

```java
@Autowired
// see @docs/inside-fence.md
```

Again @docs/architecture.md is referenced twice.
"""


def tokens(text: str) -> list[str]:
    return [ref.token for ref in extract_references(text)]


def test_extracts_unique_path_like_references() -> None:
    assert tokens(DOC) == ["@docs/architecture.md", "@nginx/nginx.dev.conf"]


def test_fenced_blocks_are_removed() -> None:
    stripped = strip_fenced_code_blocks(DOC)

    assert "inside-fence" not in stripped
    assert "@Autowired" not in stripped
    assert "Again @docs/architecture.md" in stripped


def test_unterminated_fence_hides_the_rest() -> None:
    assert tokens("```\n@docs/a.md\n") == []


def test_reference_segments() -> None:
    ref = Reference("@service-common/docs/x.md")

    assert ref.path == "service-common/docs/x.md"
    assert ref.first_segment == "service-common"


def test_placeholder_detection() -> None:
    assert is_placeholder(Reference("@path/to/file"), ["path/to/file"])
    assert not is_placeholder(Reference("@path/to/file.md"), ["path/to/file"])


def test_illustrative_heuristics() -> None:
    ref = Reference("@docs/guide.md")

    assert is_illustrative(ref, "wrap it like `@docs/guide.md` please")
    assert is_illustrative(ref, "Use @docs/guide.md to point at files")
    assert is_illustrative(ref, "Example: see @docs/guide.md")
    assert not is_illustrative(ref, "See @docs/guide.md")


def test_cross_repo_url_counts() -> None:
    ref = Reference("@service-common/docs/x.md")
    text = (
        "[@service-common/docs/x.md](https://github.com/budget-analyzer/service-common/blob/main/docs/x.md)\n"
        "and plain @service-common/docs/x.md\n"
    )

    assert cross_repo_url_counts(ref, text) == (2, 1)


def test_cross_repo_url_requires_github_target() -> None:
    ref = Reference("@service-common/docs/x.md")
    text = "[@service-common/docs/x.md](../service-common/docs/x.md)"

    assert cross_repo_url_counts(ref, text) == (1, 0)


def test_resolution_order(tmp_path: Path) -> None:
    repo = tmp_path / "orchestration"
    docs = repo / "docs"
    docs.mkdir(parents=True)
    (docs / "local.md").write_text("x", encoding="utf-8")
    (repo / "README.md").write_text("x", encoding="utf-8")
    (tmp_path / "service-common").mkdir()
    (tmp_path / "service-common" / "notes.md").write_text("x", encoding="utf-8")

    from_dir = resolve_reference(Reference("@docs/local.md"), repo, repo)
    nested = resolve_reference(Reference("@docs/local.md"), docs, repo)
    sibling = resolve_reference(Reference("@service-common/notes.md"), docs, repo)
    broken = resolve_reference(Reference("@docs/does-not-exist.md"), docs, repo)

    assert from_dir.target == repo / "docs" / "local.md"
    assert nested.target == repo / "docs" / "local.md"
    assert sibling.target == tmp_path / "service-common" / "notes.md"
    assert sibling.cross_repo
    assert not broken.ok
    assert broken.tried == (
        docs / "docs/does-not-exist.md",
        repo / "docs/does-not-exist.md",
        tmp_path / "docs/does-not-exist.md",
    )
