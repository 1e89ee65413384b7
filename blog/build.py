from __future__ import annotations

import shutil
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from blog.collections import feed_posts, group_by_tag, latest_posts, select_posts
from blog.config import BuildConfig, SiteMetadata, load_site_metadata
from blog.content import ValidationWarning, load_pages, load_posts
from blog.errors import ConfigError
from blog.render import Renderer

PACKAGE_STATIC_DIR = Path(__file__).parent / "static"

POSTS_SUBDIR = "blog"


@dataclass
class BuildResult:
    """
    Summary of one build.

    Fields:
        output_dir: directory the site was written to
        mode: "production" or "development"
        posts: number of posts published (drafts included only in development)
        drafts_skipped: drafts left out of a production build
        pages: standalone pages written
        tags: tag listing pages written
        files: every file written, relative to output_dir, sorted
        warnings: non-fatal content problems
        elapsed_s: wall-clock build time
    """

    output_dir: Path
    mode: str
    posts: int
    drafts_skipped: int
    pages: int
    tags: int
    files: List[str] = field(default_factory=list)
    warnings: List[ValidationWarning] = field(default_factory=list)
    elapsed_s: float = 0.0


def _check_output_dir(config: BuildConfig) -> None:
    output = config.output_dir.resolve()
    content = config.content_dir.resolve()
    if output == content or output in content.parents:
        raise ConfigError("output directory must not contain the content directory", path=str(config.output_dir))
    public = config.public_dir.resolve()
    if output == public or output in public.parents:
        raise ConfigError("output directory must not contain the public directory", path=str(config.output_dir))


def _clean_output_dir(output_dir: Path) -> None:
    if not output_dir.exists():
        output_dir.mkdir(parents=True)
        return
    for child in output_dir.iterdir():
        if child.is_dir() and not child.is_symlink():
            shutil.rmtree(child)
        else:
            child.unlink()


def _copy_tree(src: Path, dest: Path) -> List[str]:
    """Copy every file of src into dest; returns the copied paths relative to dest."""
    copied: List[str] = []
    if not src.is_dir():
        return copied
    for file in sorted(p for p in src.rglob("*") if p.is_file()):
        rel = file.relative_to(src)
        target = dest / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(file, target)
        copied.append(rel.as_posix())
    return copied


def render_site(config: BuildConfig, site: SiteMetadata) -> tuple[Dict[str, str], BuildResult]:
    """
    Load content and render every generated file in memory.

    Returns:
        (mapping of output-relative path -> file text, partially filled BuildResult)

    Failure modes:
        - Raises ContentError on malformed front matter or duplicate slugs
        - Raises jinja2.TemplateError if a template is malformed or missing
    """
    posts, warnings = load_posts(config.content_dir / POSTS_SUBDIR)
    all_pages, page_warnings = load_pages(config.content_dir)
    pages = [page for page in all_pages if config.include_drafts or not page.draft]
    warnings.extend(page_warnings)

    selected = select_posts(posts, config.mode)
    tags, tag_warnings = group_by_tag(selected)
    warnings.extend(tag_warnings)

    renderer = Renderer(site, config, pages=pages, tags=tags, built_at=datetime.now(timezone.utc))

    outputs: Dict[str, str] = {}
    outputs["index.html"] = renderer.render_home(latest_posts(selected, config.homepage_count), len(selected))
    outputs[f"{POSTS_SUBDIR}/index.html"] = renderer.render_archive(selected)
    for post in selected:
        outputs[f"{post.path}index.html"] = renderer.render_post(post, selected)
    for page in pages:
        outputs[f"{page.path}index.html"] = renderer.render_page(page)
    outputs["tags/index.html"] = renderer.render_tags_index()
    for group in tags:
        outputs[f"{group.path}index.html"] = renderer.render_tag(group)
    outputs["404.html"] = renderer.render_not_found()
    outputs["feed.xml"] = renderer.render_feed(feed_posts(selected, config.feed_count))

    sitemap_paths = ["", f"{POSTS_SUBDIR}/"]
    sitemap_paths += [post.path for post in selected]
    sitemap_paths += [page.path for page in pages]
    sitemap_paths += ["tags/"] + [group.path for group in tags]
    outputs["sitemap.xml"] = renderer.render_sitemap(sitemap_paths)

    result = BuildResult(
        output_dir=config.output_dir,
        mode=config.mode,
        posts=len(selected),
        drafts_skipped=len(posts) - len(selected),
        pages=len(pages),
        tags=len(tags),
        warnings=warnings,
    )
    return outputs, result


def build_site(config: BuildConfig, site: Optional[SiteMetadata] = None) -> BuildResult:
    """
    Build the whole site into config.output_dir.

    Everything is rendered before the output directory is touched, so a
    failing build leaves the previous output in place.

    Args:
        config: Build configuration (directories, mode, path prefix)
        site: Site metadata; loaded from the content directory when omitted

    Returns:
        BuildResult describing what was written
    """
    t0 = time.monotonic()
    _check_output_dir(config)
    if site is None:
        site = load_site_metadata(config.metadata_path)

    outputs, result = render_site(config, site)

    _clean_output_dir(config.output_dir)
    written = _copy_tree(PACKAGE_STATIC_DIR, config.output_dir)
    written += _copy_tree(config.public_dir, config.output_dir)

    for rel_path, text in outputs.items():
        target = config.output_dir / rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")
        written.append(rel_path)

    result.files = sorted(set(written))
    result.elapsed_s = time.monotonic() - t0
    return result
