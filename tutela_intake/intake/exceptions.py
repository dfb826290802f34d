class IntakeError(Exception):
    """Base exception for all intake pipeline errors."""


class InvalidFileTypeError(IntakeError):
    """Raised when the primary document is not a PDF."""


class NotAuthenticatedError(IntakeError):
    """Raised when upload or commit runs without an authenticated actor."""


class OperationInProgressError(IntakeError):
    """Raised when a second mutating operation starts while one is outstanding."""


class IntakeStateError(IntakeError):
    """Raised when an operation is not allowed in the session's current state."""


class ValidationFailedError(IntakeError):
    """Raised when commit preconditions are not met."""

    def __init__(self, missing_fields: list[str], has_document: bool) -> None:
        self.missing_fields = list(missing_fields)
        self.has_document = has_document
        reasons: list[str] = []
        if missing_fields:
            reasons.append(f"required fields are empty: {', '.join(missing_fields)}")
        if not has_document:
            reasons.append("no primary document has been uploaded")
        super().__init__("Cannot commit: " + "; ".join(reasons))


class CommitFailedError(IntakeError):
    """Raised or reported when a commit does not fully succeed.

    stage is "parent" when the record itself could not be inserted (nothing
    was persisted) and "attachment" when the record exists but only
    ``succeeded`` of ``requested`` attachments were committed.
    """

    PARENT = "parent"
    ATTACHMENT = "attachment"

    def __init__(self, stage: str, succeeded: int, requested: int, reason: str) -> None:
        self.stage = stage
        self.succeeded = succeeded
        self.requested = requested
        self.reason = reason
        if stage == self.PARENT:
            message = f"Could not save the tutela record: {reason}"
        else:
            message = (
                f"Saved {succeeded} of {requested} attachments before a failure: {reason}"
            )
        super().__init__(message)


class RecordNotFoundError(IntakeError):
    """Raised when a persisted record cannot be found."""
