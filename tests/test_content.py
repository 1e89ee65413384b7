from __future__ import annotations

from datetime import date, datetime, timezone
from pathlib import Path

import pytest

from blog.content import (
    load_pages,
    load_post,
    load_posts,
    parse_date,
    parse_draft,
    parse_front_matter,
    parse_tags,
    slug_from_filename,
    slugify,
)
from blog.errors import ContentError
from tests.conftest import write_post


def test_parse_front_matter_splits_metadata_and_body() -> None:
    text = "---\ntitle: Hello\ntags: [a, b]\n---\n# Heading\n\nBody\n"

    data, body = parse_front_matter(text)

    assert data == {"title": "Hello", "tags": ["a", "b"]}
    assert body == "# Heading\n\nBody\n"


def test_parse_front_matter_without_block_returns_whole_text() -> None:
    data, body = parse_front_matter("Just text\n---\n")
    assert data == {}
    assert body == "Just text\n---\n"


def test_parse_front_matter_empty_block() -> None:
    data, body = parse_front_matter("---\n---\nBody")
    assert data == {}
    assert body == "Body"


def test_parse_front_matter_unterminated_is_error() -> None:
    with pytest.raises(ContentError) as ei:
        parse_front_matter("---\ntitle: x\nBody\n", source="post.md")
    assert "not terminated" in str(ei.value)
    assert ei.value.path == "post.md"


def test_parse_front_matter_malformed_yaml_is_error() -> None:
    with pytest.raises(ContentError) as ei:
        parse_front_matter("---\ntitle: [unclosed\n---\nBody\n")
    assert "malformed front matter" in str(ei.value)


def test_parse_front_matter_non_mapping_is_error() -> None:
    with pytest.raises(ContentError):
        parse_front_matter("---\n- a\n- b\n---\nBody\n")


@pytest.mark.parametrize(
    "filename, expected",
    [
        ("my-post.md", "my-post"),
        ("2024-03-01-my-post.md", "my-post"),
        ("Hello World.md", "hello-world"),
        ("Café Notes!.md", "cafe-notes"),
        ("nested/index.md", "nested"),
    ],
)
def test_slug_from_filename(filename: str, expected: str) -> None:
    assert slug_from_filename(Path("content/blog") / filename) == expected


def test_slug_from_filename_without_usable_characters_is_error() -> None:
    with pytest.raises(ContentError):
        slug_from_filename(Path("content/blog/!!!.md"))


def test_slugify_collapses_separators() -> None:
    assert slugify("  LLM -- Orchestration  ") == "llm-orchestration"


def test_parse_date_variants() -> None:
    assert parse_date(date(2025, 1, 2)) == datetime(2025, 1, 2, tzinfo=timezone.utc)
    assert parse_date("2025-01-02T10:00:00Z") == datetime(2025, 1, 2, 10, tzinfo=timezone.utc)
    assert parse_date(datetime(2025, 1, 2, 8)).tzinfo == timezone.utc


def test_parse_date_invalid_is_error() -> None:
    with pytest.raises(ContentError):
        parse_date("next tuesday")
    with pytest.raises(ContentError):
        parse_date(12)


def test_parse_tags_normalizes() -> None:
    assert parse_tags("python") == ["python"]
    assert parse_tags(["posts", "llm", " ", "llm", "All", 42]) == ["llm", "42"]
    assert parse_tags(None) == []


@pytest.mark.parametrize("value, expected", [(True, True), ("yes", True), ("False", False), (None, False), (0, False)])
def test_parse_draft(value: object, expected: bool) -> None:
    assert parse_draft(value) is expected


def test_load_post_reads_front_matter(content_dir: Path) -> None:
    path = write_post(
        content_dir,
        "first.md",
        title="First",
        date="2025-01-02",
        tags=["llm"],
        body="## Section\n\nText with `code`.\n",
    )

    post, warnings = load_post(path)

    assert warnings == []
    assert post.slug == "first"
    assert post.path == "blog/first/"
    assert post.title == "First"
    assert post.date == datetime(2025, 1, 2, tzinfo=timezone.utc)
    assert post.tags == ["llm"]
    assert post.draft is False
    assert '<h2 id="section">Section</h2>' in post.content_html
    assert "<code>code</code>" in post.content_html


def test_load_post_missing_fields_warn(content_dir: Path) -> None:
    path = write_post(content_dir, "2024-05-06-untitled-note.md", description=None)

    post, warnings = load_post(path)

    messages = sorted(w.message for w in warnings)
    assert messages == [
        "missing required field 'date'",
        "missing required field 'description'",
        "missing required field 'title'",
    ]
    assert all(w.severity == "warning" for w in warnings)
    assert post.title == "Untitled Note"
    assert post.date == datetime(2024, 5, 6, tzinfo=timezone.utc)


def test_load_post_without_any_date_uses_mtime(content_dir: Path) -> None:
    path = write_post(content_dir, "undated.md", title="Undated")

    post, warnings = load_post(path)

    assert post.date.tzinfo == timezone.utc
    assert any(w.severity == "info" for w in warnings)


def test_load_posts_rejects_duplicate_slugs(content_dir: Path) -> None:
    write_post(content_dir, "same.md", title="A", date="2025-01-01")
    write_post(content_dir, "2025-02-02-same.md", title="B", date="2025-02-02")

    with pytest.raises(ContentError) as ei:
        load_posts(content_dir / "blog")
    assert "'same'" in str(ei.value)


def test_load_posts_missing_directory_is_empty(tmp_path: Path) -> None:
    assert load_posts(tmp_path / "nope") == ([], [])


def test_load_pages_reads_top_level_markdown(content_dir: Path) -> None:
    (content_dir / "about.md").write_text("---\ntitle: About me\n---\nHi.\n", encoding="utf-8")

    pages, warnings = load_pages(content_dir)

    assert warnings == []
    assert [p.slug for p in pages] == ["about"]
    assert pages[0].path == "about/"
    assert pages[0].title == "About me"


def test_load_pages_rejects_reserved_slug(content_dir: Path) -> None:
    (content_dir / "tags.md").write_text("---\ntitle: Tags\n---\n", encoding="utf-8")

    with pytest.raises(ContentError):
        load_pages(content_dir)


def test_load_pages_rejects_duplicate_slugs(content_dir: Path) -> None:
    (content_dir / "2024-01-01-about.md").write_text("---\ntitle: First About\n---\n", encoding="utf-8")
    (content_dir / "about.md").write_text("---\ntitle: Second About\n---\n", encoding="utf-8")

    with pytest.raises(ContentError) as ei:
        load_pages(content_dir)
    assert "'about'" in str(ei.value)
    assert "already used" in str(ei.value)


def test_load_pages_rejects_top_level_index(content_dir: Path) -> None:
    (content_dir / "index.md").write_text("---\ntitle: Home\n---\n", encoding="utf-8")

    with pytest.raises(ContentError) as ei:
        load_pages(content_dir)
    assert "index.md is reserved" in str(ei.value)


def test_load_pages_reads_draft_flag(content_dir: Path) -> None:
    (content_dir / "now.md").write_text("---\ntitle: Now\ndraft: yes\n---\n", encoding="utf-8")

    pages, _ = load_pages(content_dir)

    assert pages[0].draft is True
