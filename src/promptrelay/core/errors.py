"""Error taxonomy shared by the engine, the store and the scoring ledger.

Nothing here is fatal to the process. Callers either surface the message
(ValidationError, NotFoundError), substitute a fallback (GenerationIncomplete),
or report a generic failure (PersistenceError). StateError never escapes
the session engine; it is caught there and logged as a no-op.
"""


class PromptRelayError(Exception):
    """Base class for every error raised by promptrelay."""


class ValidationError(PromptRelayError):
    """Bad user input. The message is meant to be shown as-is."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(PromptRelayError):
    """A referenced session, game file or score does not exist."""

    def __init__(self, kind: str, key: str):
        self.kind = kind  # "session", "game file", "score"
        self.key = key
        super().__init__(f"{kind} not found: {key}")


class GenerationIncomplete(PromptRelayError):
    """The extraction pipeline could not recover HTML from model output."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class PersistenceError(PromptRelayError):
    """A read or write against the data directory failed."""

    def __init__(self, path, details: str = ""):
        self.path = path
        self.details = details
        super().__init__(f"persistence failure at {path}: {details}")


class StateError(PromptRelayError):
    """Operation is not valid for the session's current state."""

    def __init__(self, operation: str, session_id: str, state: str | None):
        self.operation = operation
        self.session_id = session_id
        self.state = state
        super().__init__(
            f"{operation} ignored for {session_id} (state={state or 'unknown'})"
        )
