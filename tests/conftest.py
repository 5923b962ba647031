from datetime import date, datetime
from itertools import count

import pytest
from flask import g

from workout_gym import create_app, db
from workout_gym.models import (
    Course, CourseEnrollment, CourseOffering, Exercise, ExerciseWorkout, StudentExtension,
    Term, User, Workout, WorkoutOffering, WorkoutPolicy
)
from workout_gym.services.session_store import SessionStore


class MemorySessionStore(SessionStore):
    """Session store kept in a dict, for services used outside a request"""

    def __init__(self):
        self.data = {}

    def load(self, user_id):
        return self.data.get(user_id)

    def save(self, user_id, state):
        self.data[user_id] = state

    def clear(self, user_id):
        self.data.pop(user_id, None)


class Factory:
    """Builds and commits model rows with sensible defaults"""

    def __init__(self):
        self._seq = count(1)

    def user(self, username=None, role='student'):
        n = next(self._seq)
        user = User(username=username or f'user{n}', email=f'user{n}@example.com', role=role)
        user.set_password('secret')
        return self._save(user)

    def course_offering(self, term_ends=date(2099, 12, 31), number=None):
        n = next(self._seq)
        course = Course(name=f'Course {n}', number=number or f'CS {1000 + n}')
        term = Term(name=f'Term {n}', starts_on=date(2000, 1, 1), ends_on=term_ends)
        course_offering = CourseOffering(course=course, term=term, label=f'Section {n}')
        return self._save(course_offering)

    def enroll(self, user, course_offering, role='student'):
        return self._save(CourseEnrollment(user=user, course_offering=course_offering, role=role))

    def exercise(self, name=None):
        n = next(self._seq)
        return self._save(Exercise(name=name or f'Exercise {n}', question=f'Question {n}?'))

    def workout(self, name=None, exercises=(), points=None, is_public=False, creator=None,
                description=None, created_at=None):
        n = next(self._seq)
        workout = Workout(
            name=name or f'Workout {n}',
            description=description,
            is_public=is_public,
            creator=creator,
            created_at=created_at or datetime.utcnow()
        )
        for index, exercise in enumerate(exercises):
            workout.exercise_workouts.append(ExerciseWorkout(
                exercise=exercise,
                order=index + 1,
                points=points[index] if points else 1.0
            ))
        return self._save(workout)

    def policy(self, name=None, no_review_before_close=False):
        n = next(self._seq)
        return self._save(WorkoutPolicy(name=name or f'Policy {n}',
                                        no_review_before_close=no_review_before_close))

    def offering(self, workout, course_offering, **fields):
        return self._save(WorkoutOffering(workout=workout, course_offering=course_offering, **fields))

    def extension(self, offering, user, **fields):
        return self._save(StudentExtension(workout_offering=offering, user=user, **fields))

    @staticmethod
    def _save(obj):
        db.session.add(obj)
        db.session.commit()
        return obj


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def factory(app):
    return Factory()


@pytest.fixture
def session_store():
    return MemorySessionStore()


@pytest.fixture
def login(client):
    """Log a user into the test client"""
    def _login(user):
        with client.session_transaction() as sess:
            sess['_user_id'] = str(user.id)
            sess['_fresh'] = True
        # Requests reuse the fixture's app context, drop the cached user
        g.pop('_login_user', None)
    return _login
