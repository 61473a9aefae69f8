"""
Project configuration for uxcheck.

Each project carries a ``.ux-test.json`` file at its root.  The file is
validated into a frozen :class:`ProjectConfig` once per run and passed
explicitly to every component that needs it.

Example::

    {
      "port": 5173,
      "startCommand": "npm run dev",
      "skipRoutes": ["/admin/*"],
      "flows": [
        {"name": "Sign in", "steps": [
          {"action": "navigate", "url": "/login"},
          {"action": "type", "selector": "#email", "value": "a@b.co"},
          {"action": "assertNoConsoleErrors"}
        ]}
      ]
    }
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictBool, ValidationError

from uxcheck.errors import ConfigurationError

logger = logging.getLogger("uxcheck.config")

CONFIG_FILE = ".ux-test.json"
GLOBAL_CONFIG_PATH = Path.home() / CONFIG_FILE

DEFAULT_BREAKPOINTS = (375, 768, 1024, 1440)
DEFAULT_VISUAL_THRESHOLD = 0.1

ProjectType = Literal["vite", "nextjs", "browser-sync", "static"]


class _ConfigModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class A11yRules(_ConfigModel):
    """axe-core rule adjustments: disabled rule ids and include/exclude selectors."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    disable: list[str] = Field(default_factory=list)
    include: list[str] = Field(default_factory=list)
    exclude: list[str] = Field(default_factory=list)


class IdentityConfig(_ConfigModel):
    """
    Identity-provider (Supabase) settings used by ``identityAuth`` steps.

    Attributes:
        url: Project URL of the identity provider
        service_role_key: Admin key used to create and delete test users
        anon_key: Public key used to sign in
        storage_key: Cookie name / localStorage key the app reads the session from
        storage_type: Where the app keeps its session
    """

    url: str
    service_role_key: str = Field(alias="serviceRoleKey")
    anon_key: str = Field(alias="anonKey")
    storage_key: str = Field(alias="storageKey")
    storage_type: Literal["localStorage", "cookie"] = Field(
        default="localStorage", alias="storageType"
    )


class FlowStep(_ConfigModel):
    """
    Single step of a scripted flow.

    ``action`` is kept as a plain string so that an unknown action fails the
    step that uses it at run time instead of rejecting the whole config.
    """

    action: str
    url: str | None = None
    selector: str | None = None
    value: str | None = None
    key: str | None = None
    ms: int | None = None
    state: Literal["attached", "visible"] | None = None
    name: str | None = None
    email: str | None = None
    password: str | None = None
    metadata: dict[str, Any] | None = None


class FlowConfig(_ConfigModel):
    """A named, ordered list of steps."""

    name: str
    steps: list[FlowStep] = Field(default_factory=list)


class ProjectConfig(_ConfigModel):
    """Validated contents of a project's ``.ux-test.json``."""

    port: Annotated[int, Field(strict=True, gt=0)]
    routes: list[str] | None = None
    skip_routes: list[str] = Field(default_factory=list, alias="skipRoutes")
    flows: list[FlowConfig] = Field(default_factory=list)
    start_command: str | None = Field(default=None, alias="startCommand")
    type: ProjectType | None = None
    breakpoints: list[Annotated[int, Field(strict=True, gt=0)]] = Field(
        default_factory=lambda: list(DEFAULT_BREAKPOINTS)
    )
    visual_threshold: Annotated[float, Field(ge=0, le=100)] = Field(
        default=DEFAULT_VISUAL_THRESHOLD, alias="visualThreshold"
    )
    visual: StrictBool = True
    a11y: StrictBool = True
    a11y_rules: A11yRules | None = Field(default=None, alias="a11yRules")
    identity: IdentityConfig | None = None
    project_dir: Path = Field(default=Path("."), alias="projectDir")

    @property
    def origin(self) -> str:
        """Base URL of the app under test."""
        return f"http://localhost:{self.port}"


class GlobalConfig(_ConfigModel):
    """User-level ``~/.ux-test.json`` used by scan mode."""

    scan_dirs: list[str] = Field(default_factory=list, alias="scanDirs")


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "<root>"
        parts.append(f'"{loc}": {err["msg"]}')
    return "; ".join(parts)


def load_config(project_dir: Path) -> ProjectConfig | None:
    """
    Load and validate a project's config file.

    Args:
        project_dir: Project root directory

    Returns:
        The validated config, or None when the project has no config file

    Raises:
        ConfigurationError: If the file is not valid JSON or fails validation
    """
    config_path = project_dir / CONFIG_FILE
    try:
        raw_text = config_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None

    try:
        raw = json.loads(raw_text)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {config_path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigurationError(f"{config_path}: top level must be an object")

    raw.pop("projectDir", None)
    try:
        return ProjectConfig.model_validate({**raw, "projectDir": project_dir.resolve()})
    except ValidationError as e:
        raise ConfigurationError(f"{config_path}: {_format_validation_error(e)}") from e


def load_global_config(path: Path | None = None) -> GlobalConfig | None:
    """Load the user-level config; an unreadable or invalid file counts as absent."""
    path = path or GLOBAL_CONFIG_PATH
    try:
        return GlobalConfig.model_validate_json(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
    except (OSError, ValidationError) as e:
        logger.debug("Ignoring global config %s: %s", path, e)
        return None


def config_exists(project_dir: Path) -> bool:
    """Check whether a directory holds a project config file."""
    return (project_dir / CONFIG_FILE).is_file()


def should_skip_route(route: str, skip_patterns: list[str]) -> bool:
    """
    Check a route against skip patterns.

    ``/admin/*`` skips everything under ``/admin/``; other ``*`` patterns
    match as anchored wildcards; anything else must match exactly.
    """
    for pattern in skip_patterns:
        if pattern.endswith("/*"):
            if route.startswith(pattern[:-1]):
                return True
        elif "*" in pattern:
            regex = "^" + ".*".join(re.escape(part) for part in pattern.split("*")) + "$"
            if re.match(regex, route):
                return True
        elif route == pattern:
            return True
    return False
