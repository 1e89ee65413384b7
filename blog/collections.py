from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from blog.content import Post, ValidationWarning, slugify


@dataclass
class TagGroup:
    """
    All posts sharing one tag.

    Invariants:
      - slug is unique across the groups returned by group_by_tag
      - posts are newest-first
    """

    name: str
    slug: str
    posts: List[Post] = field(default_factory=list)

    @property
    def path(self) -> str:
        return f"tags/{self.slug}/"


def _newest_first_key(post: Post) -> Tuple[float, str]:
    # Equal dates fall back to slug order so builds are reproducible
    return (-post.date.timestamp(), post.slug)


def sort_posts(posts: Sequence[Post]) -> List[Post]:
    return sorted(posts, key=_newest_first_key)


def select_posts(posts: Sequence[Post], mode: str) -> List[Post]:
    """
    Select the posts that belong in a build.

    Args:
        posts: Every loaded post
        mode: "production" drops drafts; "development" keeps them

    Returns:
        Posts sorted newest-first
    """
    if mode == "development":
        selected = list(posts)
    else:
        selected = [p for p in posts if not p.draft]
    return sort_posts(selected)


def latest_posts(posts: Sequence[Post], n: int) -> List[Post]:
    """First n posts newest-first; an empty list yields an empty list."""
    if n <= 0:
        return []
    return sort_posts(posts)[:n]


def feed_posts(posts: Sequence[Post], n: int) -> List[Post]:
    return latest_posts(posts, n)


def group_by_tag(posts: Sequence[Post]) -> Tuple[List[TagGroup], List[ValidationWarning]]:
    """
    Group posts by tag slug.

    Tags that slugify identically ("Python", "python") share a single group;
    the first display name seen wins.

    Returns:
        (groups sorted by slug, warnings for tags that produce no slug)
    """
    groups: Dict[str, TagGroup] = {}
    warnings: List[ValidationWarning] = []

    for post in sort_posts(posts):
        for tag in post.tags:
            slug = slugify(tag)
            if not slug:
                warnings.append(
                    ValidationWarning(
                        severity="warning",
                        category="tags",
                        message=f"tag {tag!r} has no URL-safe characters; skipped",
                        source=str(post.source_path),
                    )
                )
                continue
            group = groups.setdefault(slug, TagGroup(name=tag, slug=slug))
            if post not in group.posts:
                group.posts.append(post)

    return [groups[slug] for slug in sorted(groups)], warnings


def adjacent_posts(posts: Sequence[Post], post: Post) -> Tuple[Optional[Post], Optional[Post]]:
    """
    Neighbours of post in chronological order.

    Returns:
        (previous, next): the older and the newer post, None at either end
    """
    ordered = sort_posts(posts)
    try:
        idx = ordered.index(post)
    except ValueError:
        return None, None
    older = ordered[idx + 1] if idx + 1 < len(ordered) else None
    newer = ordered[idx - 1] if idx > 0 else None
    return older, newer
