"""
Static site builder for a personal blog.

Deterministically transforms a content tree into a static site:
  - Markdown posts and pages with YAML front matter
  - Jinja2 layouts (home, archive, tag listings, RSS feed, sitemap)

All outputs are reproducible from the content directory and site metadata.
"""

__version__ = "0.1.0"
