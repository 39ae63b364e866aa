"""Service-layer exceptions mapped to JSON error responses by the app."""


class CourtsideError(Exception):
    status_code = 400

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {'error': self.message}


class ValidationError(CourtsideError):
    status_code = 400


class PermissionDenied(CourtsideError):
    status_code = 403


class NotFound(CourtsideError):
    status_code = 404


class Conflict(CourtsideError):
    status_code = 409
