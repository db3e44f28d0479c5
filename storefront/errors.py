# Error taxonomy shared by the store, the listing pipeline and the routes.
# Every error carries the HTTP status it is rendered with.


class StorefrontError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(StorefrontError):
    status_code = 404


class Unauthorized(StorefrontError):
    status_code = 401


class Forbidden(StorefrontError):
    status_code = 403


class ValidationFailure(StorefrontError):
    status_code = 400


class UpstreamFailure(StorefrontError):
    """Store or identity provider unreachable. The message is safe to show to callers."""

    status_code = 500
