"""Error types for the context settings editor.

Only the worker adapter raises these. The editor session and the preview
coordinator catch them at their boundary and surface them as status/error
fields, so nothing here is ever raised out of a field mutation.
"""


class MemctxError(Exception):
    """Base exception for all memctx errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class WorkerUnavailableError(MemctxError):
    """Raised when the claude-mem worker cannot be reached at all."""

    def __init__(self, url: str, reason: str):
        message = f"Worker unavailable at {url}: {reason}"
        super().__init__(message, {"url": url, "reason": reason})
        self.url = url
        self.reason = reason


class PreviewFetchError(MemctxError):
    """Raised when the worker fails to render a context preview.

    Failures are per project: one project's data may be unreadable while
    another renders fine.
    """

    def __init__(self, reason: str, project: str = None, status_code: int = 0):
        message = f"Preview failed: {reason}"
        details = {"reason": reason}
        if project:
            details["project"] = project
            message = f"Preview failed for project {project}: {reason}"
        if status_code:
            details["status_code"] = status_code
        super().__init__(message, details)
        self.reason = reason
        self.project = project
        self.status_code = status_code


class SaveFailure(MemctxError):
    """Raised when persisting a configuration fails."""

    def __init__(self, reason: str, status_code: int = 0):
        message = f"Save failed: {reason}"
        details = {"reason": reason}
        if status_code:
            details["status_code"] = status_code
        super().__init__(message, details)
        self.reason = reason
        self.status_code = status_code
