"""
Error taxonomy for upload ingestion and metric computation.

Every error carries a stable `code` (returned to the client alongside the
message) and the HTTP status the API layer should answer with.
"""


class PipelineError(Exception):
    """Base class for all ingestion / processing failures."""
    code = 'pipeline_error'
    status_code = 500

    def __init__(self, message=None):
        super().__init__(message or self.__class__.__doc__.strip())

    @property
    def message(self):
        return str(self)

    def to_dict(self):
        return {'error': self.message, 'code': self.code}


# ── Upload receiver ──────────────────────────────────────────────────────────

class InvalidFormat(PipelineError):
    """File is not a CSV."""
    code = 'invalid_format'
    status_code = 400


class TooLarge(PipelineError):
    """File exceeds the upload size limit."""
    code = 'too_large'
    status_code = 413

    def __init__(self, size=None, limit=None):
        if size is not None and limit is not None:
            message = f"File is {size} bytes; the limit is {limit} bytes"
        else:
            message = None
        super().__init__(message)
        self.size = size
        self.limit = limit


class StorageFailure(PipelineError):
    """Upload could not be stored. Please try again."""
    code = 'storage_failure'
    status_code = 503


# ── CSV parser ───────────────────────────────────────────────────────────────

class EmptyFile(PipelineError):
    """CSV has no header or no data rows."""
    code = 'empty_file'
    status_code = 422


class MalformedRow(PipelineError):
    """CSV row does not match the header."""
    code = 'malformed_row'
    status_code = 422

    def __init__(self, line_number, expected=None, found=None, reason=None):
        if reason:
            message = f"Line {line_number} could not be read: {reason}"
        else:
            message = f"Line {line_number} has {found} fields; the header has {expected}"
        super().__init__(message)
        self.line_number = line_number
        self.expected = expected
        self.found = found


# ── Metrics calculator ───────────────────────────────────────────────────────

class MissingColumn(PipelineError):
    """CSV is missing a required column."""
    code = 'missing_column'
    status_code = 422

    def __init__(self, columns):
        self.columns = list(columns)
        names = ', '.join(c.capitalize() for c in self.columns)
        super().__init__(f"Missing required column(s): {names}")


class NonNumericValue(PipelineError):
    """CSV cell is not a valid number."""
    code = 'non_numeric_value'
    status_code = 422

    def __init__(self, column, line_number, value):
        if line_number is None:
            message = f"'{column}' is out of range for this file: {value}"
        else:
            message = f"Column '{column}' on line {line_number} is not a valid number: {value!r}"
        super().__init__(message)
        self.column = column
        self.line_number = line_number
        self.value = value


# ── Coordinator ──────────────────────────────────────────────────────────────

class AlreadyProcessing(PipelineError):
    """Upload is already being processed."""
    code = 'already_processing'
    status_code = 409


class ConflictingOperation(PipelineError):
    """Upload cannot be changed while it is being processed."""
    code = 'conflicting_operation'
    status_code = 409


class UploadNotFound(PipelineError):
    """Upload not found."""
    code = 'not_found'
    status_code = 404
