"""Error types raised by the collaborators around the decision engine."""

from __future__ import annotations


class OpenPRsError(Exception):
    """Base class for service errors."""


class EditorConfigError(OpenPRsError):
    """The editor roster could not be loaded or contained no handles."""


class GitHubTokenError(OpenPRsError):
    """No usable GitHub token is configured."""


class UnknownSpecError(OpenPRsError, ValueError):
    """A board was requested for a specification type that is not tracked."""

    def __init__(self, spec: str, allowed: tuple[str, ...]) -> None:
        self.spec = spec
        self.allowed = allowed
        super().__init__(f"Unknown spec '{spec}'. Use one of: {', '.join(allowed)}")
