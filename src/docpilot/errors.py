"""Exception hierarchy for DocPilot."""


class DocpilotError(Exception):
    """Base class for all DocPilot errors."""


class ModelCallError(DocpilotError):
    """The language model could not be reached or failed to answer."""

    def __init__(self, purpose: str, cause: Exception | None = None):
        self.purpose = purpose
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Model call failed during {purpose}{detail}")


class DraftingError(DocpilotError):
    """A new document could not be drafted, so no session was created."""


class PersistenceError(DocpilotError):
    """A document could not be read from or written to disk."""

    def __init__(self, path: str, cause: Exception | None = None):
        self.path = path
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Could not persist {path}{detail}")


class SessionNotFoundError(DocpilotError):
    """No document session exists with the given id."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Doc session not found: {session_id}")
