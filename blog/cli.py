#!/usr/bin/env python3
"""
Command line for building and previewing the blog.

Usage:
    python -m blog build                          # production build into _site/
    python -m blog build --path-prefix /my-blog/  # for hosting under a subdirectory
    python -m blog build --drafts                 # include drafts (development mode)
    python -m blog start                          # dev server with live reload
    python -m blog --help

Environment variables:
    BLOG_CONTENT_DIR: Content directory (default: content)
    BLOG_OUTPUT_DIR: Output directory (default: _site)
    BLOG_PUBLIC_DIR: Files copied verbatim into the output (default: public)
    BLOG_TEMPLATES_DIR: Templates that override the bundled ones (optional)
    BLOG_PATH_PREFIX: URL prefix for subdirectory hosting (default: /)
    BLOG_MODE: production | development (default: production)
"""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from jinja2 import TemplateError

from blog.build import build_site
from blog.config import BuildConfig, load_config_from_env, with_overrides
from blog.errors import BlogError
from blog.serve import DevServer


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="blog",
        description="Build a static blog from Markdown content",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("--content-dir", type=str, help="Content directory (default: content/)")
        sub.add_argument("--output-dir", type=str, help="Output directory (default: _site/)")
        sub.add_argument("--public-dir", type=str, help="Passthrough directory (default: public/)")
        sub.add_argument("--templates-dir", type=str, help="Directory of templates overriding the bundled ones")

    build = subparsers.add_parser("build", help="Render the site to static files")
    add_common(build)
    build.add_argument(
        "--path-prefix",
        type=str,
        help="URL prefix when hosting under a subdirectory (e.g. /my-blog/)",
    )
    build.add_argument(
        "--drafts",
        action="store_true",
        help="Include draft posts (development mode)",
    )

    start = subparsers.add_parser("start", help="Serve the site locally and rebuild on change")
    add_common(start)
    start.add_argument("--host", type=str, default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    start.add_argument("--port", type=int, default=8080, help="Port (default: 8080)")
    start.add_argument("--verbose", action="store_true", help="Log every HTTP request")

    return parser


def _config_from_args(args: argparse.Namespace) -> BuildConfig:
    cfg = load_config_from_env()
    return with_overrides(
        cfg,
        content_dir=args.content_dir,
        output_dir=args.output_dir,
        public_dir=args.public_dir,
        templates_dir=args.templates_dir,
        path_prefix=getattr(args, "path_prefix", None),
        mode="development" if getattr(args, "drafts", False) else None,
    )


def run_build(cfg: BuildConfig) -> int:
    print(f"[build] Building {cfg.content_dir} -> {cfg.output_dir} ({cfg.mode}, prefix {cfg.path_prefix})")
    result = build_site(cfg)

    print(f"[build] Wrote {len(result.files)} files in {result.elapsed_s:.2f}s")
    print(f"[build]   Posts: {result.posts}")
    if result.drafts_skipped:
        print(f"[build]   Drafts skipped: {result.drafts_skipped}")
    print(f"[build]   Pages: {result.pages}")
    print(f"[build]   Tags: {result.tags}")

    if result.warnings:
        print("[build]")
        print("[build] Content warnings:")
        for warning in result.warnings:
            print(f"[build]   [{warning.severity.upper()}] {warning.source}: {warning.message}")

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    args = _build_parser().parse_args(argv)

    try:
        cfg = _config_from_args(args)
        if args.command == "build":
            return run_build(cfg)

        server = DevServer(cfg, host=args.host, port=args.port, verbose=args.verbose)
        server.serve_forever()
        return 0

    except (BlogError, TemplateError) as e:
        print(f"[{args.command}] ERROR: {e}", file=sys.stderr)
        return 1

    except OSError as e:
        print(f"[{args.command}] ERROR: {type(e).__name__}: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
