"""
Reconciliation Service - brings a workout's exercises, offerings and
student extensions in line with the state submitted by the workout editor
"""
import json
import math
from dataclasses import dataclass, field
from typing import List, Optional

from flask import current_app

from workout_gym import db
from workout_gym.errors import Conflict, InvalidInput, NotFound
from workout_gym.models.course import CourseOffering
from workout_gym.models.exercise import Exercise
from workout_gym.models.student_extension import StudentExtension
from workout_gym.models.user import User
from workout_gym.models.workout import ExerciseWorkout, Workout
from workout_gym.models.workout_offering import WorkoutOffering
from workout_gym.models.workout_policy import WorkoutPolicy
from workout_gym.utils.dates import parse_datetime, to_epoch

DATE_FIELDS = ('opening_date', 'soft_deadline', 'hard_deadline')


@dataclass
class ReconciliationPlan:
    """Validated, fully resolved form of a reconciliation payload"""

    attributes: dict = field(default_factory=dict)
    removed_exercises: List[int] = field(default_factory=list)
    exercises: list = field(default_factory=list)           # [(Exercise, points)]
    removed_extensions: List[int] = field(default_factory=list)
    removed_offerings: List[int] = field(default_factory=list)
    course_offerings: list = field(default_factory=list)    # [(CourseOffering, {date field: datetime})]
    extensions: list = field(default_factory=list)          # [dict]
    common: dict = field(default_factory=dict)


class ReconciliationService:
    """Applies workout editor payloads atomically"""

    def create_workout(self, creator, desired_state: dict, common: dict = None):
        """
        Create a workout owned by ``creator`` and reconcile it

        Returns:
            Tuple (workout, first workout offering id or None)
        """
        workout = Workout()
        plan = self.plan(workout, desired_state, common)
        try:
            workout.creator = creator
            db.session.add(workout)
            offering_id = self._apply(workout, plan)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        current_app.logger.info(f"[Reconcile] Created workout {workout.id} '{workout.name}'")
        return workout, offering_id

    def reconcile(self, workout, desired_state: dict, common: dict = None) -> Optional[int]:
        """
        Reconcile an existing workout with the submitted desired state

        Args:
            workout: Workout being edited
            desired_state: Editor payload (removed_exercises, exercises,
                removed_extensions, removed_offerings, course_offerings,
                extensions, and optionally name/description/is_public)
            common: Fields shared by every offering of the workout
                (policy_id, time_limit, published, most_recent)

        Returns:
            Id of the first workout offering created or updated, or None

        Raises:
            InvalidInput: Malformed payload or no exercises list, nothing is applied
            NotFound: Unknown exercise, policy, course offering or user
            Conflict: Duplicate extension for an offering and user
        """
        plan = self.plan(workout, desired_state, common)
        try:
            offering_id = self._apply(workout, plan)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        current_app.logger.info(
            f"[Reconcile] Workout {workout.id}: {len(plan.exercises)} exercises, "
            f"{len(plan.course_offerings)} offerings, {len(plan.extensions)} extensions"
        )
        return offering_id

    def destroy_workout(self, workout):
        """Delete a workout with its links, offerings, extensions and scores"""
        workout_id = workout.id
        score_ids = [score.id for score in workout.workout_scores]
        try:
            if score_ids:
                User.query.filter(User.current_workout_score_id.in_(score_ids)).update(
                    {User.current_workout_score_id: None}, synchronize_session=False
                )
            for score in workout.workout_scores:
                db.session.delete(score)
            for offering in workout.workout_offerings:
                for extension in offering.student_extensions:
                    db.session.delete(extension)
            db.session.delete(workout)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        current_app.logger.info(f"[Reconcile] Destroyed workout {workout_id}")

    @staticmethod
    def describe(workout) -> dict:
        """Current state of a workout in the shape the editor submits"""
        first_offering = workout.workout_offerings[0] if workout.workout_offerings else None

        extensions = []
        for offering in workout.workout_offerings:
            for extension in offering.student_extensions:
                extensions.append({
                    'id': extension.id,
                    'student_id': extension.user_id,
                    'student_display': extension.user.display_name,
                    'course_offering_id': offering.course_offering_id,
                    'course_offering_display': offering.course_offering.display_name_with_term,
                    'opening_date': to_epoch(extension.opening_date),
                    'soft_deadline': to_epoch(extension.soft_deadline),
                    'hard_deadline': to_epoch(extension.hard_deadline),
                    'time_limit': extension.time_limit
                })

        return {
            'id': workout.id,
            'name': workout.name,
            'description': workout.description,
            'is_public': workout.is_public,
            'exercises': [{
                'id': link.exercise_id,
                'name': link.exercise.name,
                'points': link.points,
                'exercise_workout_id': link.id
            } for link in workout.exercise_workouts],
            'policy_id': first_offering.workout_policy_id if first_offering else None,
            'time_limit': first_offering.time_limit if first_offering else None,
            'published': first_offering.published if first_offering else None,
            'most_recent': first_offering.most_recent if first_offering else None,
            'workout_offerings': [offering.to_dict() for offering in workout.workout_offerings],
            'student_extensions': extensions
        }

    # ------------------------------------------------------------------
    # Validation

    def plan(self, workout, desired_state, common=None) -> ReconciliationPlan:
        """Validate the payload and resolve every reference before any mutation"""
        if not isinstance(desired_state, dict):
            raise InvalidInput("Desired state must be an object")
        common = common if common is not None else {}
        if not isinstance(common, dict):
            raise InvalidInput("Common policy fields must be an object")

        if 'exercises' not in desired_state:
            raise InvalidInput("exercises is required, submit an empty list to remove every exercise")

        plan = ReconciliationPlan()
        plan.attributes = self._attributes(workout, desired_state)
        plan.removed_exercises = [_to_id(v, 'removed_exercises') for v in _json_list(desired_state, 'removed_exercises')]
        plan.exercises = self._exercises(_json_list(desired_state, 'exercises'))
        plan.removed_extensions = [_to_id(v, 'removed_extensions') for v in _json_list(desired_state, 'removed_extensions')]
        plan.removed_offerings = [_to_id(v, 'removed_offerings') for v in _json_list(desired_state, 'removed_offerings')]
        plan.course_offerings = self._course_offerings(_json_list(desired_state, 'course_offerings'))
        plan.extensions = self._extensions(_json_list(desired_state, 'extensions'))
        plan.common = self._common(common)
        return plan

    @staticmethod
    def _attributes(workout, desired_state):
        attributes = {}
        if 'name' in desired_state:
            name = desired_state['name']
            if not isinstance(name, str) or not name.strip():
                raise InvalidInput("Workout name must be a non-empty string")
            attributes['name'] = name.strip()
        elif not workout.name:
            raise InvalidInput("Workout name is required")
        if 'description' in desired_state:
            description = desired_state['description']
            if description is not None and not isinstance(description, str):
                raise InvalidInput("Workout description must be a string")
            attributes['description'] = description
        if 'is_public' in desired_state:
            attributes['is_public'] = _to_bool(desired_state['is_public'], 'is_public')
        return attributes

    @staticmethod
    def _exercises(entries):
        resolved = []
        seen = set()
        for index, entry in enumerate(entries):
            if not isinstance(entry, dict) or 'id' not in entry:
                raise InvalidInput(f"exercises[{index}] must be an object with an id")
            exercise_id = _to_id(entry['id'], f'exercises[{index}].id')
            if exercise_id in seen:
                raise InvalidInput(f"Exercise {exercise_id} appears more than once")
            seen.add(exercise_id)
            points = _to_points(entry.get('points'), f'exercises[{index}].points')
            resolved.append((exercise_id, points))

        exercises = []
        for exercise_id, points in resolved:
            exercise = db.session.get(Exercise, exercise_id)
            if exercise is None:
                raise NotFound(f"Exercise {exercise_id} not found")
            exercises.append((exercise, points))
        return exercises

    @staticmethod
    def _course_offerings(entries):
        resolved = []
        seen = set()
        for index, entry in enumerate(entries):
            dates = {}
            if isinstance(entry, dict):
                raw_id = entry.get('id', entry.get('course_offering_id'))
                if raw_id is None:
                    raise InvalidInput(f"course_offerings[{index}] is missing an id")
                for name in DATE_FIELDS:
                    if name in entry:
                        dates[name] = parse_datetime(entry[name], name)
            else:
                raw_id = entry
            course_offering_id = _to_id(raw_id, f'course_offerings[{index}]')
            if course_offering_id in seen:
                continue
            seen.add(course_offering_id)

            course_offering = db.session.get(CourseOffering, course_offering_id)
            if course_offering is None:
                raise NotFound(f"Course offering {course_offering_id} not found")
            resolved.append((course_offering, dates))
        return resolved

    @staticmethod
    def _extensions(entries):
        extensions = []
        pairs = set()
        for index, entry in enumerate(entries):
            if not isinstance(entry, dict):
                raise InvalidInput(f"extensions[{index}] must be an object")
            try:
                user_id = _to_id(entry['user_id'], f'extensions[{index}].user_id')
                course_offering_id = _to_id(entry['course_offering_id'], f'extensions[{index}].course_offering_id')
            except KeyError as e:
                raise InvalidInput(f"extensions[{index}] is missing {e.args[0]}")

            if (course_offering_id, user_id) in pairs:
                raise Conflict(f"Duplicate extension for user {user_id} in course offering {course_offering_id}")
            pairs.add((course_offering_id, user_id))

            if db.session.get(User, user_id) is None:
                raise NotFound(f"User {user_id} not found")

            extension = {
                'id': _to_id(entry['id'], f'extensions[{index}].id') if entry.get('id') is not None else None,
                'user_id': user_id,
                'course_offering_id': course_offering_id,
                'time_limit': _to_time_limit(entry.get('time_limit'))
            }
            for name in DATE_FIELDS:
                extension[name] = parse_datetime(entry.get(name), name)
            extensions.append(extension)
        return extensions

    @staticmethod
    def _common(common):
        resolved = {}
        if 'policy_id' in common:
            policy_id = common['policy_id']
            if policy_id in (None, ''):
                resolved['workout_policy'] = None
            else:
                policy = db.session.get(WorkoutPolicy, _to_id(policy_id, 'policy_id'))
                if policy is None:
                    raise NotFound(f"Workout policy {policy_id} not found")
                resolved['workout_policy'] = policy
        if 'time_limit' in common:
            resolved['time_limit'] = _to_time_limit(common['time_limit'])
        for name in ('published', 'most_recent'):
            if name in common and common[name] is not None:
                resolved[name] = _to_bool(common[name], name)
        return resolved

    # ------------------------------------------------------------------
    # Application

    def _apply(self, workout, plan):
        for name, value in plan.attributes.items():
            setattr(workout, name, value)

        self._remove_exercise_links(workout, plan.removed_exercises)
        self._place_exercises(workout, plan.exercises)
        self._remove_extensions(workout, plan.removed_extensions)
        self._remove_offerings(workout, plan.removed_offerings)
        offerings = self._upsert_offerings(workout, plan.course_offerings, plan.common)
        self._upsert_extensions(workout, plan.extensions)

        return offerings[0].id if offerings else None

    @staticmethod
    def _remove_exercise_links(workout, link_ids):
        for link_id in link_ids:
            link = db.session.get(ExerciseWorkout, link_id)
            if link is not None and link in workout.exercise_workouts:
                workout.exercise_workouts.remove(link)
        # Deletes must reach the database before links are re-inserted
        db.session.flush()

    @staticmethod
    def _place_exercises(workout, exercises):
        wanted = {exercise.id for exercise, _ in exercises}
        for link in list(workout.exercise_workouts):
            if link.exercise_id not in wanted:
                workout.exercise_workouts.remove(link)
        db.session.flush()

        existing = {link.exercise_id: link for link in workout.exercise_workouts}
        for index, (exercise, points) in enumerate(exercises):
            link = existing.get(exercise.id)
            if link is None:
                workout.exercise_workouts.append(
                    ExerciseWorkout(exercise=exercise, order=index + 1, points=points)
                )
                continue
            link.order = index + 1
            link.points = points
        workout.exercise_workouts.sort(key=lambda link: link.order)

    @staticmethod
    def _remove_extensions(workout, extension_ids):
        for extension_id in extension_ids:
            extension = db.session.get(StudentExtension, extension_id)
            if extension is not None and extension.workout_offering.workout_id == workout.id:
                db.session.delete(extension)
        db.session.flush()

    @staticmethod
    def _remove_offerings(workout, offering_ids):
        for offering_id in offering_ids:
            offering = db.session.get(WorkoutOffering, offering_id)
            if offering is None or offering not in workout.workout_offerings:
                continue
            for extension in offering.student_extensions:
                db.session.delete(extension)
            workout.workout_offerings.remove(offering)
        db.session.flush()

    @staticmethod
    def _upsert_offerings(workout, course_offerings, common):
        existing = {offering.course_offering_id: offering for offering in workout.workout_offerings}
        touched = []
        for course_offering, dates in course_offerings:
            offering = existing.get(course_offering.id)
            if offering is None:
                offering = WorkoutOffering(course_offering=course_offering)
                workout.workout_offerings.append(offering)
            for name, value in common.items():
                setattr(offering, name, value)
            for name, value in dates.items():
                setattr(offering, name, value)
            touched.append(offering)
        db.session.flush()
        return touched

    @staticmethod
    def _upsert_extensions(workout, extensions):
        offerings = {offering.course_offering_id: offering for offering in workout.workout_offerings}
        for entry in extensions:
            offering = offerings.get(entry['course_offering_id'])
            if offering is None:
                raise NotFound(
                    f"Workout {workout.id} is not offered in course offering {entry['course_offering_id']}"
                )

            holder = StudentExtension.query.filter_by(
                workout_offering_id=offering.id,
                user_id=entry['user_id']
            ).first()

            if entry['id'] is None:
                if holder is not None:
                    raise Conflict(
                        f"User {entry['user_id']} already has an extension for workout offering {offering.id}"
                    )
                extension = StudentExtension(workout_offering=offering, user_id=entry['user_id'])
                db.session.add(extension)
            else:
                extension = db.session.get(StudentExtension, entry['id'])
                if extension is None or extension.workout_offering.workout_id != workout.id:
                    raise NotFound(f"Student extension {entry['id']} not found")
                if holder is not None and holder.id != extension.id:
                    raise Conflict(
                        f"User {entry['user_id']} already has an extension for workout offering {offering.id}"
                    )
                extension.workout_offering = offering
                extension.user_id = entry['user_id']

            for name in DATE_FIELDS:
                setattr(extension, name, entry[name])
            extension.time_limit = entry['time_limit']
            db.session.flush()


def _json_list(payload, key):
    """Read a list field that may arrive JSON-encoded"""
    value = payload.get(key)
    if value is None or value == '':
        return []
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            raise InvalidInput(f"{key} is not valid JSON")
    if not isinstance(value, list):
        raise InvalidInput(f"{key} must be a list")
    return value


def _to_id(value, name):
    if isinstance(value, bool):
        raise InvalidInput(f"{name} must be an integer id")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise InvalidInput(f"{name} must be an integer id")


def _to_points(value, name):
    if value is None or value == '':
        return 1.0
    if isinstance(value, bool):
        raise InvalidInput(f"{name} must be a number")
    try:
        points = float(value)
    except (TypeError, ValueError):
        raise InvalidInput(f"{name} must be a number")
    if not math.isfinite(points):
        raise InvalidInput(f"{name} must be a finite number")
    if points < 0:
        raise InvalidInput(f"{name} must not be negative")
    return points


def _to_time_limit(value):
    if value is None or value == '':
        return None
    if isinstance(value, bool):
        raise InvalidInput("time_limit must be a number of minutes")
    try:
        minutes = int(value)
    except (TypeError, ValueError):
        raise InvalidInput("time_limit must be a number of minutes")
    if minutes <= 0:
        raise InvalidInput("time_limit must be positive")
    return minutes


def _to_bool(value, name):
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str) and value.lower() in ('true', '1', 'yes', 'on'):
        return True
    if isinstance(value, str) and value.lower() in ('false', '0', 'no', 'off', ''):
        return False
    raise InvalidInput(f"{name} must be a boolean")
