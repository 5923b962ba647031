"""
Import Service - bulk creation of workouts from exported records

Unlike the interactive editor, a bulk import does not fail the whole batch
on an unresolved reference: the exercise or offering is skipped, logged and
reported, and the rest of the workout is still created.
"""
import math
from dataclasses import dataclass, field
from typing import List

from flask import current_app

from workout_gym import db
from workout_gym.errors import InvalidInput
from workout_gym.models.course import CourseOffering
from workout_gym.models.exercise import Exercise
from workout_gym.models.workout import ExerciseWorkout, Workout
from workout_gym.models.workout_offering import WorkoutOffering
from workout_gym.utils.dates import parse_datetime


@dataclass
class ImportReport:
    """Outcome of a bulk import"""

    created: List[int] = field(default_factory=list)     # workout ids
    skipped: List[str] = field(default_factory=list)     # human-readable reasons
    failed: List[str] = field(default_factory=list)      # records rejected entirely

    @property
    def ok(self):
        return not self.failed

    def to_dict(self):
        return {'created': self.created, 'skipped': self.skipped, 'failed': self.failed}


class ImportService:
    """Creates workouts, their exercise links and offerings from plain records"""

    @classmethod
    def import_workouts(cls, records, creator=None) -> ImportReport:
        """
        Import a batch of workout records

        Args:
            records: List of dicts with name, description, is_public,
                exercises ([{exid, points}]) and offerings
                ([{course_offering_id, opening_date, soft_deadline, hard_deadline}])
            creator: Optional user recorded as the creator of every workout

        Returns:
            ImportReport
        """
        if not isinstance(records, list):
            raise InvalidInput("Import data must be a list of workouts")

        report = ImportReport()
        for index, record in enumerate(records):
            if isinstance(record, dict) and isinstance(record.get('workout'), dict):
                record = record['workout']
            if not isinstance(record, dict) or not record.get('name'):
                report.failed.append(f"Record {index}: missing workout name")
                continue
            try:
                workout = cls._import_one(record, creator, report)
                db.session.commit()
                report.created.append(workout.id)
            except InvalidInput as e:
                db.session.rollback()
                report.failed.append(f"Record {index} ({record.get('name')}): {e.message}")

        current_app.logger.info(
            f"[Import] Created {len(report.created)} workouts, skipped {len(report.skipped)} references, "
            f"rejected {len(report.failed)} records"
        )
        return report

    @classmethod
    def _import_one(cls, record, creator, report):
        workout = Workout(
            name=str(record['name']).strip(),
            description=record.get('description'),
            is_public=bool(record.get('is_public', False)),
            creator=creator
        )
        db.session.add(workout)

        order = 0
        for exercise_record in record.get('exercises') or []:
            if not isinstance(exercise_record, dict):
                cls._skip(report, f"{workout.name}: malformed exercise entry {exercise_record!r}")
                continue
            raw_id = exercise_record.get('exid', exercise_record.get('id'))
            exercise_id = cls._parse_exercise_id(raw_id)
            exercise = db.session.get(Exercise, exercise_id) if exercise_id is not None else None
            if exercise is None:
                cls._skip(report, f"{workout.name}: exercise {raw_id!r} not found")
                continue
            if any(link.exercise is exercise for link in workout.exercise_workouts):
                cls._skip(report, f"{workout.name}: exercise {raw_id!r} listed twice")
                continue
            try:
                points = float(exercise_record.get('points') or 1)
            except (TypeError, ValueError):
                points = math.nan
            if not math.isfinite(points):
                cls._skip(report, f"{workout.name}: invalid points for exercise {raw_id!r}")
                continue
            order += 1
            workout.exercise_workouts.append(ExerciseWorkout(
                exercise=exercise,
                order=order,
                points=max(points, 0.0)
            ))

        for offering_record in record.get('offerings') or []:
            if not isinstance(offering_record, dict):
                cls._skip(report, f"{workout.name}: malformed offering entry {offering_record!r}")
                continue
            course_offering_id = offering_record.get('course_offering_id')
            course_offering = None
            if isinstance(course_offering_id, int) and not isinstance(course_offering_id, bool):
                course_offering = db.session.get(CourseOffering, course_offering_id)
            if course_offering is None:
                cls._skip(report, f"{workout.name}: no matching course offering {course_offering_id!r}")
                continue
            if any(o.course_offering is course_offering for o in workout.workout_offerings):
                cls._skip(report, f"{workout.name}: course offering {course_offering_id!r} listed twice")
                continue
            workout.workout_offerings.append(WorkoutOffering(
                course_offering=course_offering,
                opening_date=parse_datetime(offering_record.get('opening_date'), 'opening_date'),
                soft_deadline=parse_datetime(offering_record.get('soft_deadline'), 'soft_deadline'),
                hard_deadline=parse_datetime(offering_record.get('hard_deadline'), 'hard_deadline')
            ))

        db.session.flush()
        return workout

    @staticmethod
    def _skip(report, message):
        current_app.logger.warning(f"[Import] {message}")
        report.skipped.append(message)

    @staticmethod
    def _parse_exercise_id(value):
        """Accept 12, "12" or the exported "X12" form"""
        if isinstance(value, bool) or value is None:
            return None
        if isinstance(value, int):
            return value
        text = str(value).strip()
        if text[:1].upper() == 'X':
            text = text[1:]
        return int(text) if text.isdigit() else None
