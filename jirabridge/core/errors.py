"""Exception hierarchy shared by the client, blocks and webhook path."""

from __future__ import annotations


class JiraBridgeError(Exception):
    """Base class for errors raised by jirabridge."""

    def with_prefix(self, prefix: str) -> JiraBridgeError:
        """Return a copy of this error whose message starts with ``prefix``."""
        cls = type(self)
        err = cls.__new__(cls)
        err.__dict__.update(self.__dict__)
        err.args = (f"{prefix}: {self}",)
        return err


class ApiError(JiraBridgeError):
    """Jira answered with a non-2xx status."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"Jira API error ({status_code}): {body}")
        self.status_code = status_code
        self.body = body


class ValidationError(JiraBridgeError):
    """An operation's input preconditions are not met."""


class NotFoundError(JiraBridgeError):
    """A named remote resource (transition, user) could not be resolved."""


class OperationError(JiraBridgeError):
    """Wraps an unexpected exception raised while running a block."""
