"""Typed errors raised by the service layer.

Routes do not translate these by hand: the application factory registers a
handler that turns any ``ServiceError`` into a JSON body with its status code.
"""


class ServiceError(Exception):
    status_code = 500
    default_message = 'Internal server error'

    def __init__(self, message=None, errors=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.errors = errors

    def to_dict(self):
        body = {'message': self.message}
        if self.errors:
            body['errors'] = self.errors
        return body


class InvalidDataError(ServiceError):
    status_code = 400
    default_message = 'Invalid data'


class NotFoundError(ServiceError):
    status_code = 404
    default_message = 'Resource not found'


class ForbiddenError(ServiceError):
    status_code = 403
    default_message = 'Access denied'


class ConflictError(ServiceError):
    status_code = 409
    default_message = 'Conflicting state'
