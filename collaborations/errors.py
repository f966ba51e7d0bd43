class CollaborationError(Exception):
    """Base error; ``code`` and ``status_code`` feed the API error envelope."""
    code = "collaboration_error"
    status_code = 400

    def __init__(self, message: str | None = None):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__


class RowRejected(CollaborationError):
    """A single CSV row could not be turned into an assignment record."""
    code = "row_rejected"

    MISSING_FIELD = "missing_field"
    INVALID_DATE = "invalid_date"

    def __init__(self, kind: str, row: dict | None = None):
        super().__init__(f"Row rejected ({kind}): {row!r}")
        self.kind = kind
        self.row = row


class WriteFailed(CollaborationError):
    """Persisting one assignment record failed."""
    code = "write_failed"
    status_code = 500

    def __init__(self, record, message: str | None = None):
        super().__init__(message or f"Could not persist {record!r}")
        self.record = record


class StreamReadFailed(CollaborationError):
    """Error reading file"""
    code = "stream_read_failed"
    status_code = 422

    def __init__(self, summary, message: str | None = None):
        super().__init__(message)
        self.summary = summary


class UnsupportedFileType(CollaborationError):
    """Only CSV files are accepted"""
    code = "unsupported_file_type"


class UploadTooLarge(CollaborationError):
    """Uploaded file exceeds the size limit"""
    code = "upload_too_large"
    status_code = 413
