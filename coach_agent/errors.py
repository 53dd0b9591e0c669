"""Exception hierarchy for coach-agent."""


class CoachAgentError(Exception):
    """Base class for errors raised by coach-agent."""


class ConfigError(CoachAgentError):
    """Raised when configuration is missing or invalid."""


class RecordNotFoundError(CoachAgentError):
    """Raised by stores when a record is missing."""

    def __init__(self, kind: str, record_id: str) -> None:
        super().__init__(f"{kind} not found: {record_id}")
        self.kind = kind
        self.record_id = record_id


class SessionNotFoundError(RecordNotFoundError):
    """Raised when a coach creator session does not exist."""

    def __init__(self, session_id: str) -> None:
        super().__init__("Session", session_id)


class SessionIncompleteError(CoachAgentError):
    """Raised when a coach creator session has not finished its intake."""

    def __init__(self, session_id: str) -> None:
        super().__init__("Session is not complete - cannot generate coach config")
        self.session_id = session_id
