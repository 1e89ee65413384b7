from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from blog.errors import ConfigError

MODES = ("production", "development")

DEFAULT_HOMEPAGE_COUNT = 3
DEFAULT_FEED_COUNT = 10


@dataclass(frozen=True)
class Author:
    name: str = ""
    email: str = ""
    url: str = ""


@dataclass(frozen=True)
class SiteMetadata:
    """
    Site-wide metadata shared by every template.

    Invariants:
      - url always ends with "/" so relative paths can be joined onto it
    """
    title: str
    url: str
    language: str = "en"
    description: str = ""
    author: Author = field(default_factory=Author)


@dataclass
class BuildConfig:
    content_dir: Path = Path("content")
    output_dir: Path = Path("_site")
    public_dir: Path = Path("public")
    templates_dir: Optional[Path] = None  # searched before the bundled templates
    path_prefix: str = "/"
    mode: str = "production"
    homepage_count: int = DEFAULT_HOMEPAGE_COUNT
    feed_count: int = DEFAULT_FEED_COUNT
    livereload: bool = False  # only the dev server serves the reload endpoint

    @property
    def metadata_path(self) -> Path:
        return self.content_dir / "_data" / "metadata.yaml"

    @property
    def include_drafts(self) -> bool:
        return self.mode == "development"


def normalize_path_prefix(prefix: Optional[str]) -> str:
    """Normalize a deployment prefix to the "/segment/" form ("/" when empty)."""
    if not prefix:
        return "/"
    stripped = prefix.strip().strip("/")
    if not stripped:
        return "/"
    return f"/{stripped}/"


def _require_str(raw: Dict[str, Any], key: str, *, path: str) -> str:
    value = raw.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"missing required field {key!r}", path=path)
    return value.strip()


def load_site_metadata(path: str | Path) -> SiteMetadata:
    """
    Load site metadata from a YAML file.

    Failure modes:
        - Raises ConfigError if the file is missing or is not valid YAML
        - Raises ConfigError if the top level is not a mapping
        - Raises ConfigError if title or url is missing
    """
    metadata_path = Path(path)
    if not metadata_path.exists():
        raise ConfigError("site metadata file not found", path=str(metadata_path))

    try:
        raw = yaml.safe_load(metadata_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML: {e}", path=str(metadata_path)) from e

    if not isinstance(raw, dict):
        raise ConfigError("top level must be a mapping", path=str(metadata_path))

    title = _require_str(raw, "title", path=str(metadata_path))
    url = _require_str(raw, "url", path=str(metadata_path))
    if not url.endswith("/"):
        url += "/"

    author_raw = raw.get("author") or {}
    if isinstance(author_raw, str):
        author = Author(name=author_raw)
    elif isinstance(author_raw, dict):
        author = Author(
            name=str(author_raw.get("name", "")),
            email=str(author_raw.get("email", "")),
            url=str(author_raw.get("url", "")),
        )
    else:
        raise ConfigError("author must be a string or a mapping", path=str(metadata_path))

    return SiteMetadata(
        title=title,
        url=url,
        language=str(raw.get("language", SiteMetadata.language)),
        description=str(raw.get("description", "")),
        author=author,
    )


def load_config_from_env() -> BuildConfig:
    mode = os.environ.get("BLOG_MODE", "production").strip().lower() or "production"
    if mode not in MODES:
        raise ConfigError(f"unsupported mode {mode!r} (expected one of {', '.join(MODES)})", path="BLOG_MODE")

    templates_dir = os.environ.get("BLOG_TEMPLATES_DIR", "").strip() or None

    return BuildConfig(
        content_dir=Path(os.environ.get("BLOG_CONTENT_DIR", "content")),
        output_dir=Path(os.environ.get("BLOG_OUTPUT_DIR", "_site")),
        public_dir=Path(os.environ.get("BLOG_PUBLIC_DIR", "public")),
        templates_dir=Path(templates_dir) if templates_dir else None,
        path_prefix=normalize_path_prefix(os.environ.get("BLOG_PATH_PREFIX")),
        mode=mode,
    )


def with_overrides(cfg: BuildConfig, **overrides: Any) -> BuildConfig:
    """Return a copy of cfg with every non-None override applied."""
    changes = {k: v for k, v in overrides.items() if v is not None}
    if "path_prefix" in changes:
        changes["path_prefix"] = normalize_path_prefix(changes["path_prefix"])
    for key in ("content_dir", "output_dir", "public_dir", "templates_dir"):
        if key in changes:
            changes[key] = Path(changes[key])
    if "mode" in changes and changes["mode"] not in MODES:
        raise ConfigError(f"unsupported mode {changes['mode']!r}", path="mode")
    return replace(cfg, **changes)
