"""Route discovery for projects without an explicit ``routes`` list.

Heuristics only: React Router ``<Route path>`` literals for Vite apps,
``page.tsx`` files for the Next.js app router, and ``*.html`` files for
static sites.  Dynamic segments are skipped; ``["/"]`` is the fallback.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path

from uxcheck.config import ProjectConfig

logger = logging.getLogger("uxcheck.discover")

VITE_APP_CANDIDATES = ("src/App.tsx", "src/App.jsx", "src/app.tsx", "src/app.jsx")
NEXT_PAGE_FILES = ("page.tsx", "page.jsx")

_ROUTE_PATH_RE = re.compile(r"""<Route\s+[^>]*path=["']([^"']+)["']""")


def detect_type(project_dir: Path) -> str | None:
    """Guess the project type from package.json and HTML entry points."""
    try:
        pkg = json.loads((project_dir / "package.json").read_text(encoding="utf-8"))
    except (OSError, ValueError):
        pkg = {}
    if isinstance(pkg, dict):
        deps = {**(pkg.get("dependencies") or {}), **(pkg.get("devDependencies") or {})}
        if "next" in deps:
            return "nextjs"
        if "vite" in deps:
            return "vite"
        if "browser-sync" in deps:
            return "browser-sync"

    if (project_dir / "index.html").exists():
        return "static"
    if (project_dir / "dist" / "index.html").exists():
        return "browser-sync"
    return None


def discover_routes(config: ProjectConfig) -> list[str]:
    """Find testable routes for a project."""
    project_type = config.type or detect_type(config.project_dir)
    logger.debug("Discovering routes for %s project in %s", project_type, config.project_dir)

    match project_type:
        case "vite":
            routes = _discover_vite_routes(config.project_dir)
        case "nextjs":
            routes = _discover_next_routes(config.project_dir)
        case "browser-sync" | "static":
            routes = _discover_static_routes(config.project_dir, project_type)
        case _:
            routes = []
    return routes or ["/"]


def _discover_vite_routes(project_dir: Path) -> list[str]:
    for candidate in VITE_APP_CANDIDATES:
        path = project_dir / candidate
        if path.is_file():
            try:
                content = path.read_text(encoding="utf-8", errors="replace")
            except OSError as e:
                logger.warning("Cannot read %s: %s", path, e)
                return []
            break
    else:
        return []

    routes = []
    for path in _ROUTE_PATH_RE.findall(content):
        if path == "*" or ":" in path:
            continue
        routes.append(path if path.startswith("/") else f"/{path}")
    return routes


def _discover_next_routes(project_dir: Path) -> list[str]:
    routes: list[str] = []

    def walk(directory: Path, prefix: str) -> None:
        try:
            entries = sorted(directory.iterdir())
        except OSError:
            return
        if any(e.is_file() and e.name in NEXT_PAGE_FILES for e in entries):
            routes.append(prefix or "/")
        for entry in entries:
            if not entry.is_dir():
                continue
            if entry.name == "api" or entry.name.startswith(("[", "_")):
                continue
            walk(entry, f"{prefix}/{entry.name}")

    walk(project_dir / "src" / "app", "")
    return routes


def _discover_static_routes(project_dir: Path, project_type: str) -> list[str]:
    if project_type == "browser-sync":
        scan_dirs = [project_dir / "dist"]
    else:
        scan_dirs = [project_dir, project_dir / "dist"]

    for scan_dir in scan_dirs:
        if not scan_dir.is_dir():
            continue
        routes: list[str] = []
        for entry in sorted(scan_dir.glob("*.html")):
            if entry.name == "index.html":
                if "/" not in routes:
                    routes.insert(0, "/")
            else:
                routes.append(f"/{entry.name}")
        if routes:
            return routes
    return []
