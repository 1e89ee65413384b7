from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional

import pytest

from blog.config import BuildConfig

METADATA_YAML = """
title: Test Blog
url: https://example.org/my-blog
language: en
description: A blog used in tests.
author:
  name: Test Author
  email: author@example.org
  url: https://example.org/about
""".lstrip()


def write_post(
    content_dir: Path,
    filename: str,
    *,
    title: Optional[str] = None,
    date: Optional[str] = None,
    description: Optional[str] = "Description.",
    tags: Iterable[str] = (),
    draft: bool = False,
    body: str = "Body text.\n",
) -> Path:
    lines = ["---"]
    if title is not None:
        lines.append(f"title: {title!r}")
    if description is not None:
        lines.append(f"description: {description!r}")
    if date is not None:
        lines.append(f"date: {date}")
    tags = list(tags)
    if tags:
        lines.append("tags: [" + ", ".join(repr(t) for t in tags) + "]")
    if draft:
        lines.append("draft: true")
    lines.append("---")

    path = content_dir / "blog" / filename
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n" + body, encoding="utf-8")
    return path


@pytest.fixture
def content_dir(tmp_path: Path) -> Path:
    root = tmp_path / "content"
    (root / "_data").mkdir(parents=True)
    (root / "blog").mkdir()
    (root / "_data" / "metadata.yaml").write_text(METADATA_YAML, encoding="utf-8")
    return root


@pytest.fixture
def build_config(tmp_path: Path, content_dir: Path) -> BuildConfig:
    return BuildConfig(
        content_dir=content_dir,
        output_dir=tmp_path / "_site",
        public_dir=tmp_path / "public",
    )
