from __future__ import annotations


class MomentsError(Exception):
    """Base error carrying the HTTP status it maps to at the route layer."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class NotConfiguredError(MomentsError):
    status_code = 500


class NotFoundError(MomentsError):
    status_code = 404


class ValidationFailure(MomentsError):
    status_code = 400


class UpstreamError(MomentsError):
    """A backend answered with a non-2xx status or a malformed body."""

    status_code = 502

    def __init__(self, message: str, upstream_status: int | None = None, body: str | None = None) -> None:
        super().__init__(message)
        self.upstream_status = upstream_status
        self.body = body
