"""
Error taxonomy for MedSimplify.

Every error carries an HTTP status, a machine-readable code and a
message that is safe to show to clients.
"""


class MedSimplifyError(Exception):
    """Base class for all service errors."""

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, error_code: str = None):
        self.message = message
        if error_code:
            self.error_code = error_code
        super().__init__(self.message)


class UnsupportedMediaType(MedSimplifyError):
    """Uploaded file is neither plain text nor PDF."""

    status_code = 400
    error_code = "UNSUPPORTED_MEDIA_TYPE"


class ExtractionFailed(MedSimplifyError):
    """Uploaded document could not be parsed."""

    status_code = 500
    error_code = "EXTRACTION_FAILED"


class ValidationError(MedSimplifyError):
    """Request is missing required input (report text or upload)."""

    status_code = 400
    error_code = "VALIDATION_ERROR"


class PayloadTooLarge(MedSimplifyError):
    """Request body or upload exceeds the configured limit."""

    status_code = 413
    error_code = "PAYLOAD_TOO_LARGE"


class UpstreamFailure(MedSimplifyError):
    """Text-generation service was unreachable, rejected the call or replied with garbage."""

    status_code = 502
    error_code = "UPSTREAM_FAILURE"
