"""
Domain failures raised by the engine.
The HTTP layer maps each one onto its status code.
"""


class DomainError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(DomainError):
    status_code = 404


class Forbidden(DomainError):
    status_code = 403


class InvalidState(DomainError):
    status_code = 409


class IneligibleDonor(DomainError):
    status_code = 400


class ValidationFailure(DomainError):
    status_code = 422
