"""Domain errors raised by the service layer.

Each error carries the HTTP status the API boundary answers with. Only the
free-text message crosses the boundary.
"""


class AgentDeckError(Exception):
    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(AgentDeckError):
    status_code = 404


class UnauthenticatedError(AgentDeckError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class NotLinkedError(AgentDeckError):
    status_code = 400

    def __init__(
        self,
        message: str = "GitHub repository not connected. Please connect your repository first.",
    ) -> None:
        super().__init__(message)


class NothingToCommitError(AgentDeckError):
    status_code = 400

    def __init__(self, message: str = "No generated code files found for this task") -> None:
        super().__init__(message)


class TaskStateError(AgentDeckError):
    """The task is not in a state that allows the requested transition."""

    status_code = 409


class UpstreamError(AgentDeckError):
    """The LLM or GitHub API answered with a failure or a malformed payload."""

    status_code = 502


class RefConflictError(UpstreamError):
    """A branch ref update was rejected because it was not a fast-forward."""

    status_code = 409


class ConfigError(AgentDeckError):
    status_code = 500
