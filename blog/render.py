from __future__ import annotations

from datetime import datetime, timezone
from email.utils import format_datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import urljoin

from jinja2 import ChoiceLoader, Environment, FileSystemLoader, StrictUndefined, select_autoescape

from blog.collections import TagGroup, adjacent_posts
from blog.config import BuildConfig, SiteMetadata
from blog.content import Page, Post

PACKAGE_TEMPLATES_DIR = Path(__file__).parent / "templates"

LIVERELOAD_ENDPOINT = "__livereload"


def _get_template_env(templates_dir: Optional[Path] = None) -> Environment:
    """Create Jinja2 environment; a user templates directory shadows the bundled one."""
    loaders = []
    if templates_dir is not None:
        loaders.append(FileSystemLoader(str(templates_dir)))
    loaders.append(FileSystemLoader(str(PACKAGE_TEMPLATES_DIR)))
    return Environment(
        loader=ChoiceLoader(loaders),
        autoescape=select_autoescape(enabled_extensions=("html", "xml", "j2"), default=True),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def readable_date(dt: datetime) -> str:
    """Format a date for display, e.g. "05 March 2024"."""
    return dt.strftime("%d %B %Y")


def html_date(dt: datetime) -> str:
    """Format a date for <time datetime=...> attributes."""
    return dt.strftime("%Y-%m-%d")


def rfc822(dt: datetime) -> str:
    """Format a date as RSS expects (RFC 822)."""
    return format_datetime(dt.astimezone(timezone.utc))


def prefixed_url(path: str, path_prefix: str) -> str:
    """Site-relative URL with the deployment prefix applied ("blog/x/" -> "/my-blog/blog/x/")."""
    return path_prefix + path.lstrip("/")


def absolute_url(path: str, site_url: str) -> str:
    """Absolute URL for feeds and sitemaps; site_url already carries the deployment path."""
    return urljoin(site_url, path.lstrip("/"))


class Renderer:
    """
    Renders every page type of the site.

    Holds the template environment plus the context shared by all pages
    (site metadata, navigation pages, tag groups, build mode).
    """

    def __init__(
        self,
        site: SiteMetadata,
        config: BuildConfig,
        *,
        pages: Sequence[Page] = (),
        tags: Sequence[TagGroup] = (),
        built_at: Optional[datetime] = None,
    ) -> None:
        self.site = site
        self.config = config
        self.pages = list(pages)
        self.tags = list(tags)
        self.built_at = built_at or datetime.now(timezone.utc)

        self.env = _get_template_env(config.templates_dir)
        self.env.filters["readable_date"] = readable_date
        self.env.filters["html_date"] = html_date
        self.env.filters["rfc822"] = rfc822
        self.env.filters["url"] = lambda path: prefixed_url(path, config.path_prefix)
        self.env.filters["absolute_url"] = lambda path: absolute_url(path, site.url)

    def _base_context(self) -> Dict[str, Any]:
        return {
            "site": self.site,
            "nav_pages": self.pages,
            "all_tags": self.tags,
            "mode": self.config.mode,
            "path_prefix": self.config.path_prefix,
            "built_at": self.built_at,
            "livereload": self.config.livereload,
            "livereload_endpoint": LIVERELOAD_ENDPOINT,
        }

    def _render(self, template_name: str, **context: Any) -> str:
        template = self.env.get_template(template_name)
        return template.render(**self._base_context(), **context)

    def render_home(self, latest: Sequence[Post], total: int) -> str:
        return self._render("home.html.j2", title=None, description=None, posts=list(latest), total_posts=total)

    def render_post(self, post: Post, all_posts: Sequence[Post]) -> str:
        older, newer = adjacent_posts(all_posts, post)
        post_tags = [t for t in self.tags if post in t.posts]
        return self._render(
            "post.html.j2",
            title=post.title,
            description=post.description or None,
            post=post,
            post_tags=post_tags,
            older=older,
            newer=newer,
        )

    def render_archive(self, posts: Sequence[Post]) -> str:
        return self._render("archive.html.j2", title="Archive", description=None, posts=list(posts))

    def render_tags_index(self) -> str:
        return self._render("tags.html.j2", title="Tags", description=None, tags=self.tags)

    def render_tag(self, group: TagGroup) -> str:
        return self._render(
            "tag.html.j2",
            title=f"Tagged “{group.name}”",
            description=None,
            tag=group,
            posts=group.posts,
        )

    def render_page(self, page: Page) -> str:
        return self._render("page.html.j2", title=page.title, description=page.description or None, page=page)

    def render_not_found(self) -> str:
        return self._render("404.html.j2", title="Page not found", description=None)

    def render_feed(self, posts: Sequence[Post]) -> str:
        """
        Render the RSS 2.0 feed.

        Failure modes:
            - Raises jinja2.TemplateError if feed.xml.j2 is malformed or missing
        """
        items: List[Post] = list(posts)
        last_build = items[0].date if items else self.built_at
        return self._render("feed.xml.j2", posts=items, last_build=last_build)

    def render_sitemap(self, paths: Sequence[str]) -> str:
        return self._render("sitemap.xml.j2", paths=list(paths))
