"""
Error types for uxcheck runs.

Failures inside a single route, flow step or screenshot comparison are
recorded in that unit's result record; only the ``ResourceUnavailableError``
family (server start) aborts a whole project run.
"""


class UxCheckError(Exception):
    """Base exception for all uxcheck errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConfigurationError(UxCheckError):
    """
    Raised when configuration is invalid or incomplete.

    Examples:
    - Malformed ``.ux-test.json``
    - Missing ``port``
    - A flow step that needs the ``identity`` section when none is configured
    """

    pass


class UnknownActionError(ConfigurationError):
    """Raised when a flow step names an action that does not exist."""

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"Unknown action: {action}")


class ResourceUnavailableError(UxCheckError):
    """Raised when a project-level resource cannot be acquired."""

    pass


class ServerError(ResourceUnavailableError):
    """Base for dev-server lifecycle failures."""

    pass


class MissingStartCommandError(ServerError):
    """Raised when the origin is unreachable and no start command is configured."""

    pass


class ProcessSpawnError(ServerError):
    """Raised when the server process cannot start or exits before it is ready."""

    pass


class StartupTimeoutError(ServerError):
    """Raised when the server shows no readiness within the startup window."""

    pass


class FlowAssertionError(UxCheckError):
    """
    Raised by assertion steps when page content does not match.

    Examples:
    - Expected text missing from an element
    - Current URL does not contain the expected URL
    - Console errors collected during the flow
    """

    pass


class IdentityProviderError(UxCheckError):
    """Raised when the identity provider rejects a fixture operation."""

    pass
