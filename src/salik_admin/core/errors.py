"""Error taxonomy for admin actions.

Every error names the action the user attempted so the CLI can report
``<action> failed: <reason>`` without knowing which layer raised it.
"""


class SalikAdminError(Exception):
    """Base class for all failures surfaced to the operator."""

    def __init__(self, action: str, message: str) -> None:
        super().__init__(message)
        self.action = action
        self.message = message

    def __str__(self) -> str:
        return self.message


class LocalValidationError(SalikAdminError):
    """Rejected before any network call was attempted."""


class FormValidationError(LocalValidationError):
    def __init__(self, action: str, problems: list[str]) -> None:
        super().__init__(action, "; ".join(problems))
        self.problems = problems


class WorkbookDecodeError(LocalValidationError):
    """The uploaded file is not a readable .xlsx/.xls workbook."""


class EmptyWorkbookError(LocalValidationError):
    """The workbook parsed fine but its first sheet has no data rows."""


class NoValidRowsError(LocalValidationError):
    """Rows were decoded but none has an institutional email."""


class EmptyBatchError(LocalValidationError):
    pass


class SubmitInProgressError(LocalValidationError):
    pass


class UploadError(SalikAdminError):
    """Object storage rejected the blob or the connection dropped mid-upload."""

    def __init__(self, action: str, message: str, object_name: str | None = None) -> None:
        super().__init__(action, message)
        self.object_name = object_name


class ApiError(SalikAdminError):
    """Network error or non-2xx response from the library API."""

    def __init__(
        self,
        action: str,
        message: str,
        status_code: int | None = None,
        url: str | None = None,
    ) -> None:
        super().__init__(action, message)
        self.status_code = status_code
        self.url = url
