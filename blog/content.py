from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import markdown
import yaml

from blog.errors import ContentError

FRONT_MATTER_DELIMITER = "---"
FRONT_MATTER_END = ("---", "...")

REQUIRED_FIELDS = ("title", "description", "date")

# Collection names that are never listed as tags.
RESERVED_TAGS = frozenset({"posts", "all"})

# Top-level output directories that pages cannot claim.
RESERVED_PAGE_SLUGS = frozenset({"blog", "tags", "css", "index", "404", "feed", "sitemap"})

MARKDOWN_EXTENSIONS = ["fenced_code", "tables", "toc"]

_DATE_PREFIX = re.compile(r"^(\d{4}-\d{2}-\d{2})[-_]")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_TRUTHY = {"true", "yes", "on", "1", "y"}


@dataclass
class ValidationWarning:
    """
    A non-fatal problem found while loading content.

    Fields:
        severity: "info" | "warning"
        category: grouping such as "front_matter" or "tags"
        message: plain-English description
        source: content file the warning refers to, if any
    """

    severity: str
    category: str
    message: str
    source: Optional[str] = None


@dataclass
class Post:
    """
    A dated blog entry rendered to blog/<slug>/.

    Invariants:
      - slug is derived from the filename only, never from front matter
      - date is timezone-aware (UTC)
    """
    slug: str
    title: str
    date: datetime
    description: str
    tags: List[str]
    draft: bool
    body: str
    content_html: str
    source_path: Path
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def path(self) -> str:
        return f"blog/{self.slug}/"


@dataclass
class Page:
    """A standalone page (such as About) rendered to <slug>/."""
    slug: str
    title: str
    description: str
    body: str
    content_html: str
    source_path: Path
    draft: bool = False
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def path(self) -> str:
        return f"{self.slug}/"


def slugify(name: str) -> str:
    """Lowercase ASCII slug: "Hello, World!" -> "hello-world"."""
    folded = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    return _NON_ALNUM.sub("-", folded.lower()).strip("-")


def slug_from_filename(path: Path) -> str:
    """
    Derive a URL slug from a content file's name.

    "2024-03-01-my-post.md" -> "my-post"; "my-post/index.md" -> "my-post".

    Raises:
        ContentError: If nothing slug-worthy remains
    """
    stem = path.parent.name if path.stem == "index" else path.stem
    stem = _DATE_PREFIX.sub("", stem)
    slug = slugify(stem)
    if not slug:
        raise ContentError("cannot derive a slug from the filename", path=str(path))
    return slug


def _title_from_slug(slug: str) -> str:
    return " ".join(word.capitalize() for word in slug.split("-"))


def parse_front_matter(text: str, *, source: Optional[str] = None) -> Tuple[Dict[str, Any], str]:
    """
    Split a content file into its front-matter mapping and Markdown body.

    Returns:
        (metadata, body). Text without a leading "---" line yields ({}, text).

    Raises:
        ContentError: If the block is unterminated, is not valid YAML,
            or does not contain a mapping
    """
    text = text.lstrip("\ufeff")
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].rstrip() != FRONT_MATTER_DELIMITER:
        return {}, text

    for idx in range(1, len(lines)):
        if lines[idx].rstrip() in FRONT_MATTER_END:
            raw_block = "".join(lines[1:idx])
            body = "".join(lines[idx + 1:])
            break
    else:
        raise ContentError("front matter block is not terminated", path=source)

    try:
        data = yaml.safe_load(raw_block)
    except yaml.YAMLError as e:
        raise ContentError(f"malformed front matter: {e}", path=source) from e

    if data is None:
        return {}, body
    if not isinstance(data, dict):
        raise ContentError("front matter must be a mapping", path=source)
    return data, body


def parse_date(value: Any, *, source: Optional[str] = None) -> datetime:
    """Coerce a front-matter date (date, datetime or ISO string) to an aware UTC datetime."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError as e:
            raise ContentError(f"invalid date {value!r}", path=source) from e
    else:
        raise ContentError(f"invalid date {value!r}", path=source)

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_tags(value: Any) -> List[str]:
    """Normalize the tags key: string or list, blanks and reserved names dropped, order kept."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        items = list(value)
    else:
        items = [value]

    tags: List[str] = []
    for item in items:
        tag = str(item).strip()
        if not tag or tag.lower() in RESERVED_TAGS or tag in tags:
            continue
        tags.append(tag)
    return tags


def parse_draft(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in _TRUTHY


def render_markdown(body: str) -> str:
    return markdown.markdown(body, extensions=MARKDOWN_EXTENSIONS, output_format="html")


def _missing_field_warnings(data: Dict[str, Any], source: str, fields: Tuple[str, ...]) -> List[ValidationWarning]:
    warnings: List[ValidationWarning] = []
    for key in fields:
        value = data.get(key)
        if value is None or (isinstance(value, str) and not value.strip()):
            warnings.append(
                ValidationWarning(
                    severity="warning",
                    category="front_matter",
                    message=f"missing required field {key!r}",
                    source=source,
                )
            )
    return warnings


def load_post(path: Path) -> Tuple[Post, List[ValidationWarning]]:
    """
    Load one post file.

    Failure modes:
        - Raises ContentError on malformed front matter or an invalid date
        - Missing title/description/date are reported as warnings
    """
    source = str(path)
    data, body = parse_front_matter(path.read_text(encoding="utf-8"), source=source)
    warnings = _missing_field_warnings(data, source, REQUIRED_FIELDS)
    slug = slug_from_filename(path)

    if data.get("date") is not None:
        post_date = parse_date(data["date"], source=source)
    else:
        # Filename date prefix, then file mtime
        stem = path.parent.name if path.stem == "index" else path.stem
        match = _DATE_PREFIX.match(stem)
        if match:
            post_date = parse_date(match.group(1), source=source)
        else:
            post_date = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
            warnings.append(
                ValidationWarning(
                    severity="info",
                    category="front_matter",
                    message="no date given; using file modification time",
                    source=source,
                )
            )

    title = str(data.get("title") or "").strip() or _title_from_slug(slug)

    post = Post(
        slug=slug,
        title=title,
        date=post_date,
        description=str(data.get("description") or "").strip(),
        tags=parse_tags(data.get("tags")),
        draft=parse_draft(data.get("draft")),
        body=body,
        content_html=render_markdown(body),
        source_path=path,
        data=data,
    )
    return post, warnings


def load_posts(posts_dir: Path) -> Tuple[List[Post], List[ValidationWarning]]:
    """
    Load every Markdown file under posts_dir (recursively).

    Returns posts in filename order; selection and sorting happen in blog.collections.

    Raises:
        ContentError: On any malformed file or when two files share a slug
    """
    if not posts_dir.is_dir():
        return [], []

    posts: List[Post] = []
    warnings: List[ValidationWarning] = []
    seen: Dict[str, Path] = {}

    for md_file in sorted(posts_dir.rglob("*.md")):
        post, post_warnings = load_post(md_file)
        if post.slug in seen:
            raise ContentError(
                f"slug {post.slug!r} is already used by {seen[post.slug]}",
                path=str(md_file),
            )
        seen[post.slug] = md_file
        posts.append(post)
        warnings.extend(post_warnings)

    return posts, warnings


def load_pages(content_dir: Path) -> Tuple[List[Page], List[ValidationWarning]]:
    """
    Load top-level Markdown pages (content/*.md), drafts included.

    Raises:
        ContentError: On a malformed file, a reserved slug, a top-level
            index.md (the homepage is generated), or two files sharing a slug
    """
    if not content_dir.is_dir():
        return [], []

    pages: List[Page] = []
    warnings: List[ValidationWarning] = []
    seen: Dict[str, Path] = {}

    for md_file in sorted(content_dir.glob("*.md")):
        source = str(md_file)
        if md_file.stem.lower() == "index":
            raise ContentError("index.md is reserved for the generated homepage", path=source)
        data, body = parse_front_matter(md_file.read_text(encoding="utf-8"), source=source)
        slug = slug_from_filename(md_file)
        if slug in RESERVED_PAGE_SLUGS:
            raise ContentError(f"page slug {slug!r} collides with a generated path", path=source)
        if slug in seen:
            raise ContentError(f"page slug {slug!r} is already used by {seen[slug]}", path=source)
        seen[slug] = md_file
        warnings.extend(_missing_field_warnings(data, source, ("title",)))

        pages.append(
            Page(
                slug=slug,
                title=str(data.get("title") or "").strip() or _title_from_slug(slug),
                description=str(data.get("description") or "").strip(),
                body=body,
                content_html=render_markdown(body),
                source_path=md_file,
                draft=parse_draft(data.get("draft")),
                data=data,
            )
        )

    return pages, warnings
