from __future__ import annotations

import sys
import threading
from functools import partial
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from jinja2 import TemplateError

from blog.build import BuildResult, build_site
from blog.config import BuildConfig, with_overrides
from blog.errors import BlogError
from blog.render import LIVERELOAD_ENDPOINT, PACKAGE_TEMPLATES_DIR


class _DevRequestHandler(SimpleHTTPRequestHandler):
    server: "_DevHTTPServer"

    def do_GET(self) -> None:  # noqa: N802
        if self.path.split("?", 1)[0] == f"/{LIVERELOAD_ENDPOINT}":
            body = str(self.server.dev.generation).encode("ascii")
            self.send_response(200)
            self.send_header("Content-Type", "text/plain; charset=ascii")
            self.send_header("Cache-Control", "no-store")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)
            return
        super().do_GET()

    def log_message(self, format: str, *args: object) -> None:  # noqa: A002
        if self.server.dev.verbose:
            super().log_message(format, *args)


class _DevHTTPServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, address: Tuple[str, int], handler, dev: "DevServer") -> None:
        super().__init__(address, handler)
        self.dev = dev


def snapshot_mtimes(dirs: List[Path]) -> Dict[str, float]:
    """Map every file under dirs to its modification time."""
    mtimes: Dict[str, float] = {}
    for root in dirs:
        if not root.is_dir():
            continue
        for path in root.rglob("*"):
            if path.is_file():
                try:
                    mtimes[str(path)] = path.stat().st_mtime
                except FileNotFoundError:
                    continue  # removed between listing and stat
    return mtimes


class DevServer:
    """
    Development server: builds in development mode, serves the output
    directory, and rebuilds whenever a watched file changes.

    The generation counter increases after every successful build; the
    live-reload script injected into pages polls it and reloads on change.
    """

    def __init__(
        self,
        config: BuildConfig,
        *,
        host: str = "127.0.0.1",
        port: int = 8080,
        poll_interval_s: float = 0.5,
        verbose: bool = False,
    ) -> None:
        # Served from the root with reloading, whatever the deployment prefix is
        self.config = with_overrides(config, mode="development", path_prefix="/", livereload=True)
        self.host = host
        self.port = port
        self.poll_interval_s = poll_interval_s
        self.verbose = verbose
        self.generation = 0
        self.last_result: Optional[BuildResult] = None

        self._httpd: Optional[_DevHTTPServer] = None
        self._stop = threading.Event()
        self._threads: List[threading.Thread] = []
        self._mtimes: Dict[str, float] = {}

    @property
    def watched_dirs(self) -> List[Path]:
        dirs = [self.config.content_dir, self.config.public_dir, PACKAGE_TEMPLATES_DIR]
        if self.config.templates_dir is not None:
            dirs.append(self.config.templates_dir)
        return dirs

    @property
    def address(self) -> Tuple[str, int]:
        if self._httpd is None:
            return (self.host, self.port)
        host, port = self._httpd.server_address[:2]
        return (str(host), int(port))

    def rebuild(self) -> Optional[BuildResult]:
        """
        Build once. On failure the previous output stays in place.

        Returns:
            The BuildResult, or None if the build failed
        """
        try:
            result = build_site(self.config)
        except (BlogError, TemplateError, OSError) as e:
            print(f"[serve] ERROR: {type(e).__name__}: {e}", file=sys.stderr)
            return None

        self.last_result = result
        self.generation += 1
        print(f"[serve] Built {len(result.files)} files in {result.elapsed_s:.2f}s (generation {self.generation})")
        for warning in result.warnings:
            print(f"[serve]   [{warning.severity.upper()}] {warning.source}: {warning.message}")
        return result

    def _watch(self) -> None:
        while not self._stop.wait(self.poll_interval_s):
            current = snapshot_mtimes(self.watched_dirs)
            if current != self._mtimes:
                self._mtimes = current
                print("[serve] Change detected, rebuilding...")
                self.rebuild()

    def start(self) -> None:
        """Build, bind the HTTP server and start the serving and watching threads."""
        self._mtimes = snapshot_mtimes(self.watched_dirs)
        self.rebuild()
        self.config.output_dir.mkdir(parents=True, exist_ok=True)

        handler = partial(_DevRequestHandler, directory=str(self.config.output_dir))
        self._httpd = _DevHTTPServer((self.host, self.port), handler, self)
        self._stop.clear()

        self._threads = [
            threading.Thread(target=self._httpd.serve_forever, name="blog-serve", daemon=True),
            threading.Thread(target=self._watch, name="blog-watch", daemon=True),
        ]
        for thread in self._threads:
            thread.start()

        host, port = self.address
        print(f"[serve] Serving {self.config.output_dir} at http://{host}:{port}/")

    def stop(self) -> None:
        self._stop.set()
        if self._httpd is not None:
            self._httpd.shutdown()
            self._httpd.server_close()
        for thread in self._threads:
            thread.join(timeout=5)
        self._threads = []
        self._httpd = None

    def serve_forever(self) -> None:
        self.start()
        try:
            self._stop.wait()
        except KeyboardInterrupt:
            print("[serve] Stopping")
        finally:
            self.stop()
