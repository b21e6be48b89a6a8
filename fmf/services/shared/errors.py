"""
Error taxonomy for the access gate.

Resolver and registry failures are raised as AccessError subclasses; the
service registers one exception handler that renders them as
{"error": message} with the carried status code. Login rejections are not
exceptions - see RejectReason in fmf.services.access.gate.
"""


class AccessError(Exception):
    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class Unauthenticated(AccessError):
    status_code = 401
    message = "Invalid authentication"


class Forbidden(AccessError):
    status_code = 403
    message = "Admin access required"


class NotFound(AccessError):
    status_code = 404
    message = "Access request not found"


class AlreadyResolved(AccessError):
    status_code = 400
    message = "Request already resolved"


class BadAction(AccessError):
    status_code = 400
    message = "Invalid request parameters"


class StorageUnavailable(AccessError):
    status_code = 500
    message = "Internal server error"
