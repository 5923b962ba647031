"""
Search Service - finds workouts visible to a user
"""
from datetime import datetime
from typing import List, Optional

from flask import current_app
from sqlalchemy import func, or_

from workout_gym import db
from workout_gym.models.course import CourseEnrollment, CourseOffering
from workout_gym.models.workout import Workout
from workout_gym.models.workout_offering import WorkoutOffering
from workout_gym.services.capability import Capability, RoleCapability


class SearchService:
    """Free-text workout search with visibility and course scoping"""

    NO_MATCH_MESSAGE = 'Your search did not match any workouts. Try these instead...'
    NO_WORKOUTS_MESSAGE = 'No public workouts exist yet. Please wait for contributors to add more.'

    # Weight of a term found in the workout name vs. its description
    NAME_WEIGHT = 2
    DESCRIPTION_WEIGHT = 1

    def __init__(self, capability: Capability = None):
        self.capability = capability or RoleCapability()

    @staticmethod
    def tokenize(terms) -> List[str]:
        """
        Split search input into terms

        Commas separate terms when any comma is present, otherwise
        whitespace does. A list is taken as already tokenized.
        """
        if terms is None:
            return []
        if isinstance(terms, (list, tuple)):
            tokens = [str(term) for term in terms if term is not None]
        else:
            text = str(terms)
            tokens = text.split(',') if ',' in text else text.split()
        return [token.strip() for token in tokens if token.strip()]

    def search(self, terms, user, course=None, scope_to_offerings=False) -> List[Workout]:
        """
        Search workouts

        Args:
            terms: Search text, list of terms, or None for no filter
            user: Requesting user (None for anonymous)
            course: Restrict to workouts offered in this course
            scope_to_offerings: Restrict to course offerings the user is enrolled in

        Returns:
            Workouts ordered by relevance, then most recent first, without duplicates
        """
        tokens = self.tokenize(terms)
        query = Workout.query

        if course is not None or scope_to_offerings:
            offered = db.select(WorkoutOffering.workout_id).join(
                CourseOffering, CourseOffering.id == WorkoutOffering.course_offering_id
            )
            if course is not None:
                offered = offered.where(CourseOffering.course_id == course.id)
            if scope_to_offerings:
                if user is None:
                    return []
                offered = offered.join(
                    CourseEnrollment, CourseEnrollment.course_offering_id == CourseOffering.id
                ).where(CourseEnrollment.user_id == user.id)
            query = query.filter(Workout.id.in_(offered))

        if tokens:
            clauses = []
            for token in tokens:
                pattern = f'%{_escape_like(token.lower())}%'
                clauses.append(func.lower(Workout.name).like(pattern, escape='\\'))
                clauses.append(func.lower(Workout.description).like(pattern, escape='\\'))
            query = query.filter(or_(*clauses))

        visible = self.capability.manage_filter(user)
        if visible is not None:
            query = query.filter(or_(Workout.is_public.is_(True), visible))

        unique = {}
        for workout in query.all():
            if workout.id in unique:
                continue
            if visible is not None or workout.is_public or self.capability.check(user, 'manage', workout):
                unique[workout.id] = workout

        return sorted(
            unique.values(),
            key=lambda workout: (
                self._relevance(workout, tokens),
                workout.created_at or datetime.min,
                workout.id
            ),
            reverse=True
        )

    def search_with_fallback(self, terms, user, course=None, scope_to_offerings=False):
        """
        Search, falling back to an unfiltered listing when nothing matches

        Returns:
            Tuple (workouts, message or None)
        """
        workouts = self.search(terms, user, course, scope_to_offerings)
        if workouts:
            return workouts, None

        current_app.logger.info(f"[Search] No match for {terms!r}, listing all visible workouts")
        workouts = self.search(None, user, course, scope_to_offerings)
        if workouts:
            return workouts, self.NO_MATCH_MESSAGE
        return [], self.NO_WORKOUTS_MESSAGE

    @staticmethod
    def gym(limit: int = None) -> List[Workout]:
        """Most recently created public workouts"""
        limit = limit or current_app.config.get('GYM_SIZE', 12)
        return Workout.query.filter_by(is_public=True).order_by(
            Workout.created_at.desc(), Workout.id.desc()
        ).limit(limit).all()

    @staticmethod
    def find_public_by_name(name: str) -> Optional[Workout]:
        """Public workout with this name, ignoring case"""
        if not name:
            return None
        return Workout.query.filter(
            func.lower(Workout.name) == name.strip().lower(),
            Workout.is_public.is_(True)
        ).order_by(Workout.id).first()

    def _relevance(self, workout, tokens):
        if not tokens:
            return 0
        name = (workout.name or '').lower()
        description = (workout.description or '').lower()
        relevance = 0
        for token in tokens:
            token = token.lower()
            if token in name:
                relevance += self.NAME_WEIGHT
            if token in description:
                relevance += self.DESCRIPTION_WEIGHT
        return relevance


def _escape_like(text):
    return text.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')
