"""Field operations error taxonomy

Domain errors (ValidationError, ConflictError, ...) are raised straight to the
caller. Infrastructure errors (UploadError, TransactionTimeoutError) are logged
with context at the raise site and then raised typed as well.
"""


class FieldOpsError(Exception):
    """Base error for the field operations core"""

    code: str = "FIELDOPS_ERROR"

    def __init__(self, message: str, recoverable: bool = False) -> None:
        """
        Args:
            message: human readable description
            recoverable: whether retrying the whole operation may succeed
        """
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable


class ValidationError(FieldOpsError):
    """Malformed input, rejected before any I/O"""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message, recoverable=False)
        self.field = field


class TaskNotFoundError(FieldOpsError):
    """No task with the given id"""

    code = "TASK_NOT_FOUND"

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task with id {task_id} does not exist")
        self.task_id = task_id


class InvalidTaskStateError(FieldOpsError):
    """The task's current status does not allow the requested operation"""

    code = "INVALID_TASK_STATE"

    def __init__(self, message: str, task_id: str, status: str) -> None:
        super().__init__(message)
        self.task_id = task_id
        self.status = status


class IllegalTransitionError(InvalidTaskStateError):
    """from -> to is not in the transition table"""

    code = "ILLEGAL_TRANSITION"

    def __init__(self, task_id: str, from_status: str, to_status: str) -> None:
        super().__init__(
            f"Cannot transition task {task_id} from {from_status} to {to_status}",
            task_id=task_id,
            status=from_status,
        )
        self.from_status = from_status
        self.to_status = to_status


class ConflictError(FieldOpsError):
    """A conditional update matched zero rows: another actor won the race"""

    code = "CONFLICT"

    def __init__(self, message: str, task_id: str) -> None:
        super().__init__(message, recoverable=False)
        self.task_id = task_id


class TaskAlreadyCompletedError(ConflictError):
    """Checkout lost to a concurrent (or earlier) checkout of the same task"""

    code = "TASK_ALREADY_COMPLETED"

    def __init__(self, task_id: str) -> None:
        super().__init__(
            "This task was already completed by someone else",
            task_id=task_id,
        )


class UploadError(FieldOpsError):
    """The attachment gateway failed; safe to retry the whole operation"""

    code = "UPLOAD_FAILED"

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        super().__init__(message, recoverable=True)
        self.original_error = original_error


class TransactionTimeoutError(FieldOpsError):
    """The atomic phase exceeded its time or lock-wait budget

    A commit already in flight when the budget ran out may still have landed.
    """

    code = "TRANSACTION_TIMEOUT"

    def __init__(self, message: str, budget_s: float) -> None:
        super().__init__(message, recoverable=True)
        self.budget_s = budget_s
