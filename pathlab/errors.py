"""Domain error taxonomy.

Every rejected precondition is raised as one of these and rendered by the
handlers registered in ``pathlab.main``. The ``error`` code is stable so that
clients can branch on it.
"""


class PathlabError(Exception):
    status_code = 500
    error = "InternalServerError"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationFailed(PathlabError):
    status_code = 400
    error = "ValidationError"


class NotFoundError(PathlabError):
    status_code = 404
    error = "NotFound"


class ConflictError(PathlabError):
    status_code = 409
    error = "Conflict"


class DuplicateTestError(ConflictError):
    error = "DuplicateTest"

    def __init__(self, test_name: str):
        super().__init__(f"'{test_name}' is already in the list", {"testName": test_name})


class PaymentExceedsTotalError(ConflictError):
    error = "PaymentExceedsTotal"


class InvalidTransitionError(ConflictError):
    error = "InvalidStatusTransition"


class EditLockedError(PathlabError):
    status_code = 403
    error = "EditLocked"


class HardLockedError(EditLockedError):
    error = "HardLocked"

    def __init__(self, receipt_number: int | None = None):
        super().__init__(
            "Editing locked: a report has been generated for this receipt",
            {"receiptNumber": receipt_number},
        )


class SoftLockedError(EditLockedError):
    error = "SoftLocked"

    def __init__(self, receipt_number: int | None = None):
        super().__init__(
            "Permission required: the pathology registration for this receipt does not allow edits",
            {"receiptNumber": receipt_number},
        )


class CounterAllocationError(PathlabError):
    status_code = 503
    error = "InfrastructureError"

    def __init__(self, sequence_name: str):
        super().__init__(f"Could not allocate the next value for '{sequence_name}'. Please retry.")
        self.sequence_name = sequence_name
