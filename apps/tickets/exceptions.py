"""
Errors raised by the ticket services.

Views translate them into HTTP responses; every message is meant to be shown
to the operator as is.
"""


class TicketError(Exception):
    """Base class for ticket service errors"""

    status_code = 400

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ValidationError(TicketError):
    """Malformed or out of range input, or an operation the ticket state forbids"""

    status_code = 400


class NotFoundError(TicketError):
    status_code = 404


class ConflictError(TicketError):
    """The ticket changed underneath the operation; re-read and retry"""

    status_code = 409


class DependencyUnavailableError(TicketError):
    """A backing store (e.g. the sequence counter) could not be reached"""

    status_code = 503
