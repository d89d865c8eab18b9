"""Error taxonomy shared by the adapters, the service layer and the HTTP handlers."""

from typing import Optional


class AnalysisError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_body(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class InputValidationError(AnalysisError):
    """No file, wrong mime type, oversize or undecodable upload."""

    status_code = 400


class UpstreamAuthError(AnalysisError):
    status_code = 401


class UpstreamRateLimitError(AnalysisError):
    status_code = 429


class UpstreamServiceError(AnalysisError):
    status_code = 502


class NotConfiguredError(AnalysisError):
    status_code = 500


class UnexpectedError(AnalysisError):
    """Anything else. Details stay in the server log."""

    status_code = 500


class UpstreamParseError(Exception):
    """
    Malformed structured payload in a model response.

    Not an AnalysisError and has no HTTP status: it travels inside a
    NarrativeParse and the service answers with the fallback summary.
    """

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details
