"""
Authorization and term lifecycle collaborators

Services never decide authorization themselves. Routes ask a Capability and
the search service filters candidates through one; policy evaluation asks a
ShutdownState whether an offering's term is over.
"""
from datetime import datetime

from sqlalchemy import false, or_, select, true

from workout_gym.models.course import CourseEnrollment
from workout_gym.models.workout import Workout
from workout_gym.models.workout_offering import WorkoutOffering


class Capability:
    """Boolean oracle: may ``user`` perform ``action`` on ``resource``?"""

    def check(self, user, action: str, resource) -> bool:
        raise NotImplementedError

    def manage_filter(self, user):
        """
        SQL condition on Workout matching what ``user`` may manage, or None
        when the rule has no SQL form and each workout must go through check()
        """
        return None


class RoleCapability(Capability):
    """
    Role-based capability rules

    - admins may do anything
    - anyone may read or practice a public workout
    - a workout's creator, and staff of any course offering it is offered in,
      may read, practice, manage, update and destroy it
    - a student enrolled in a course offering where the workout is published
      may read and practice it
    - only instructors and admins may create workouts
    """

    READ_ACTIONS = ('read', 'practice')
    MANAGE_ACTIONS = ('manage', 'edit', 'update', 'destroy')

    def check(self, user, action: str, resource) -> bool:
        if user is None or not getattr(user, 'is_authenticated', False):
            return action in self.READ_ACTIONS and isinstance(resource, Workout) and resource.is_public

        if user.is_admin:
            return True

        if action == 'create':
            return user.role == 'instructor'

        if not isinstance(resource, Workout):
            return False

        if action in self.READ_ACTIONS:
            return resource.is_public or self.manages(user, resource) or self._is_offered_to(user, resource)

        if action in self.MANAGE_ACTIONS:
            return self.manages(user, resource)

        return False

    def manages(self, user, workout) -> bool:
        """Creator of the workout, or staff of a course offering it is offered in"""
        if workout.creator_id is not None and workout.creator_id == user.id:
            return True
        return self._offering_query(user, workout).filter(
            CourseEnrollment.role.in_(CourseEnrollment.STAFF_ROLES)
        ).first() is not None

    def manage_filter(self, user):
        if user is None or not getattr(user, 'is_authenticated', False):
            return false()
        if user.is_admin:
            return true()
        staffed = select(WorkoutOffering.workout_id).join(
            CourseEnrollment,
            CourseEnrollment.course_offering_id == WorkoutOffering.course_offering_id
        ).where(
            CourseEnrollment.user_id == user.id,
            CourseEnrollment.role.in_(CourseEnrollment.STAFF_ROLES)
        )
        return or_(Workout.creator_id == user.id, Workout.id.in_(staffed))

    def _is_offered_to(self, user, workout) -> bool:
        return self._offering_query(user, workout).filter(
            WorkoutOffering.published.is_(True)
        ).first() is not None

    @staticmethod
    def _offering_query(user, workout):
        return WorkoutOffering.query.join(
            CourseEnrollment,
            CourseEnrollment.course_offering_id == WorkoutOffering.course_offering_id
        ).filter(
            WorkoutOffering.workout_id == workout.id,
            CourseEnrollment.user_id == user.id
        )


class ShutdownState:
    """Term/course lifecycle signal for a workout offering"""

    def is_shutdown(self, workout_offering, now=None) -> bool:
        raise NotImplementedError


class TermShutdownState(ShutdownState):
    """An offering is shut down once its course offering's term has ended"""

    def __init__(self, clock=None):
        self.clock = clock or datetime.utcnow

    def is_shutdown(self, workout_offering, now=None) -> bool:
        course_offering = workout_offering.course_offering
        if course_offering is None:
            return False
        term = course_offering.term
        if term is None:
            return False
        return term.has_ended(now or self.clock())
