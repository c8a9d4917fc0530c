"""Domain exceptions raised by repositories and services.

The HTTP layer maps these onto status codes and the message handlers turn
them into failure envelopes. Cache-layer problems never raise one of these.
"""


class ServiceError(Exception):
    """Base class for errors that carry an HTTP status."""

    status_code = 500
    error = "Internal Server Error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BadRequestError(ServiceError):
    status_code = 400
    error = "Bad Request"


class NotFoundError(ServiceError):
    status_code = 404
    error = "Not Found"


class ConflictError(ServiceError):
    status_code = 409
    error = "Conflict"
