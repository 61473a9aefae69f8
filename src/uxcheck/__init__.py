"""
uxcheck - UX verification for locally running web apps.

Crawls configured routes for console/network errors and blank renders,
audits WCAG compliance, compares responsive screenshots against stored
baselines, and replays scripted user flows.
"""

from __future__ import annotations

from uxcheck._version import get_version
from uxcheck.errors import (
    ConfigurationError,
    FlowAssertionError,
    ResourceUnavailableError,
    ServerError,
    UxCheckError,
)

__version__ = get_version()

__all__ = [
    "__version__",
    "ConfigurationError",
    "FlowAssertionError",
    "ResourceUnavailableError",
    "ServerError",
    "UxCheckError",
]
