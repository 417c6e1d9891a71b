class HeartHuntError(Exception):
    """Base error; ``status_code`` is the HTTP status the API maps it to."""
    status_code = 500

    def __init__(self, message, cause=None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def to_dict(self):
        payload = {'success': False, 'message': self.message}
        if self.cause is not None:
            payload['error'] = str(self.cause)
        return payload


class ValidationError(HeartHuntError):
    status_code = 400


class NotFoundError(HeartHuntError):
    status_code = 404


class StoreError(HeartHuntError):
    status_code = 500


class InvalidTransitionError(HeartHuntError):
    status_code = 409


class PuzzleUnavailableError(HeartHuntError):
    status_code = 502
