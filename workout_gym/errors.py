"""
Error taxonomy shared by services and routes

Each error carries the HTTP status the workouts blueprint answers with.
PolicyDenied and NoActiveSession are expected, user-facing outcomes.
"""


class WorkoutGymError(Exception):
    """Base class for all domain errors"""
    status_code = 500

    def __init__(self, message=None):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__

    def to_dict(self):
        return {'success': False, 'error': self.__class__.__name__, 'message': self.message}


class NotFound(WorkoutGymError):
    """Referenced entity does not exist"""
    status_code = 404


class InvalidInput(WorkoutGymError):
    """Malformed payload"""
    status_code = 400


class Unauthorized(WorkoutGymError):
    """Capability check failed (raised by callers, never inside services)"""
    status_code = 403


class Conflict(WorkoutGymError):
    """Duplicate StudentExtension for the same offering and user"""
    status_code = 409


class NoActiveSession(WorkoutGymError):
    """Advance or close called without a practice session"""
    status_code = 409

    def __init__(self, message='No active practice session'):
        super().__init__(message)


class PolicyDenied(WorkoutGymError):
    """Practice or review blocked by dates, extensions or shutdown rules"""
    status_code = 403

    def __init__(self, reason, message=None):
        self.reason = reason
        super().__init__(message or f'Access denied: {reason.value}')

    def to_dict(self):
        data = super().to_dict()
        data['reason'] = self.reason.value
        return data
