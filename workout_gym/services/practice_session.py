"""
Practice Session Service - per-user progression through a workout

A session is NotStarted (nothing in the session store), InProgress (the
store holds the user's current workout) or Closed (cleared by close()).
Scores live in WorkoutScore rows; the store only holds what is needed
between requests of the same user.
"""
import enum
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Union

from flask import current_app

from workout_gym import db
from workout_gym.errors import InvalidInput, NoActiveSession, NotFound, PolicyDenied
from workout_gym.models.course import CourseEnrollment
from workout_gym.models.workout import Workout
from workout_gym.models.workout_offering import WorkoutOffering
from workout_gym.models.workout_score import WorkoutScore
from workout_gym.services.access_policy import AccessPolicyService
from workout_gym.services.session_store import PracticeSessionState, SessionStore, get_session_store


class SessionSignal(enum.Enum):
    SESSION_COMPLETE = 'session_complete'


SESSION_COMPLETE = SessionSignal.SESSION_COMPLETE


@dataclass(frozen=True)
class ExerciseResult:
    """Outcome of one attempted exercise"""

    exercise_id: int
    points: float = 0.0
    correct: Optional[bool] = None
    feedback: Optional[str] = None


@dataclass
class EvaluationResult:
    """Final state of a closed practice session"""

    workout_id: int
    score: float
    max_score: float
    exercises_completed: int
    exercises_remaining: int
    closed: bool
    feedback: List[dict] = field(default_factory=list)

    def to_dict(self):
        return {
            'workout_id': self.workout_id,
            'score': self.score,
            'max_score': self.max_score,
            'exercises_completed': self.exercises_completed,
            'exercises_remaining': self.exercises_remaining,
            'closed': self.closed,
            'feedback': self.feedback
        }


class PracticeSessionService:
    """Starts, advances and closes practice sessions"""

    def __init__(self, session_store: SessionStore = None, access_policy: AccessPolicyService = None):
        self._session_store = session_store
        self.access_policy = access_policy or AccessPolicyService()

    @property
    def store(self) -> SessionStore:
        return self._session_store or get_session_store()

    @staticmethod
    def find_offering(user, workout) -> Optional[WorkoutOffering]:
        """The offering of ``workout`` in a course offering the user belongs to"""
        return WorkoutOffering.query.join(
            CourseEnrollment,
            CourseEnrollment.course_offering_id == WorkoutOffering.course_offering_id
        ).filter(
            WorkoutOffering.workout_id == workout.id,
            CourseEnrollment.user_id == user.id
        ).order_by(
            WorkoutOffering.published.desc(),
            WorkoutOffering.most_recent.desc(),
            WorkoutOffering.id.desc()
        ).first()

    def start(self, user, workout, workout_offering=None, now=None) -> WorkoutScore:
        """
        Begin (or resume) practicing a workout

        Args:
            user: Practicing user
            workout: Workout to practice
            workout_offering: Offering practiced through; resolved from the
                user's enrollments when omitted
            now: Evaluation time (defaults to utcnow)

        Returns:
            The user's WorkoutScore for the workout

        Raises:
            PolicyDenied: Offering not open, past its hard deadline, or
                review locked until close
        """
        now = now or datetime.utcnow()
        score = workout.score_for(user)

        offering = workout_offering
        if offering is None and score is not None:
            offering = score.workout_offering
        if offering is None:
            offering = self.find_offering(user, workout)
        if offering is not None and offering.workout_id != workout.id:
            raise InvalidInput(f"Workout offering {offering.id} does not offer workout {workout.id}")

        reviewing = score is not None and score.closed
        late = False
        if offering is not None:
            if reviewing:
                decision = self.access_policy.can_review(score, offering, now)
            else:
                decision = self.access_policy.can_practice(user, offering, now, resuming=score is not None)
            if not decision:
                current_app.logger.info(
                    f"[Practice] User {user.id} denied workout {workout.id}: {decision.reason.value}"
                )
                raise PolicyDenied(decision.reason)
            late = decision.late

        try:
            if score is None:
                score = WorkoutScore(
                    user=user,
                    workout=workout,
                    workout_offering=offering,
                    score=0.0,
                    exercises_completed=0,
                    exercises_remaining=workout.exercise_count,
                    started_at=now
                )
                db.session.add(score)
            user.current_workout_score = score
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        state = self.store.load(user.id)
        if state is None or state.current_workout != workout.id:
            state = PracticeSessionState(
                current_workout=workout.id,
                workout_offering=offering.id if offering is not None else None,
                remaining_exercises=workout.exercise_ids(),
                reviewing=reviewing
            )
        state.late = late
        self.store.save(user.id, state)

        current_app.logger.info(f"[Practice] User {user.id} started workout {workout.id} (score {score.id})")
        return score

    def advance(self, user, prior_result: ExerciseResult = None, now=None) -> Union[int, SessionSignal]:
        """
        Record the previous exercise's outcome and pick the next exercise

        Exercises are offered in workout order, skipping the ones already
        seen in this session.

        Returns:
            The next exercise id, or SESSION_COMPLETE

        Raises:
            NoActiveSession: No practice session for this user
            InvalidInput: The result names an exercise outside the workout
        """
        now = now or datetime.utcnow()
        state, workout, score = self._load(user)

        offering = db.session.get(WorkoutOffering, state.workout_offering) if state.workout_offering else None

        try:
            if not state.reviewing and not score.closed and offering is not None:
                window = self.access_policy.effective_window(user, offering)
                if self.access_policy.time_expired(score, window, now):
                    current_app.logger.info(f"[Practice] Time limit reached for score {score.id}")
                    score.close(now)

            if prior_result is not None:
                self._record(state, workout, score, prior_result, now)

            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        if score.closed and not state.reviewing:
            self.store.save(user.id, state)
            return SESSION_COMPLETE

        seen = set(state.seen_exercises)
        state.remaining_exercises = [ex_id for ex_id in workout.exercise_ids() if ex_id not in seen]
        self.store.save(user.id, state)

        if not state.remaining_exercises:
            return SESSION_COMPLETE
        return state.remaining_exercises[0]

    def close(self, user, now=None) -> EvaluationResult:
        """
        Finalize the session and clear it

        Raises:
            NoActiveSession: No practice session for this user
        """
        now = now or datetime.utcnow()
        try:
            state, workout, score = self._load(user)

            if not score.closed and score.exercises_remaining == 0:
                score.close(now)
            if user.current_workout_score_id == score.id:
                user.current_workout_score = None
            db.session.commit()

            order = {ex_id: position for position, ex_id in enumerate(workout.exercise_ids())}
            feedback = sorted(
                state.workout_feedback.values(),
                key=lambda entry: order.get(entry['exercise_id'], len(order))
            )
            result = EvaluationResult(
                workout_id=workout.id,
                score=score.score,
                max_score=workout.total_points(),
                exercises_completed=score.exercises_completed,
                exercises_remaining=score.exercises_remaining,
                closed=score.closed,
                feedback=feedback
            )
        except Exception:
            db.session.rollback()
            raise
        finally:
            self.store.clear(user.id)

        current_app.logger.info(
            f"[Practice] User {user.id} closed workout {result.workout_id}: "
            f"{result.score}/{result.max_score}"
        )
        return result

    def _load(self, user):
        state = self.store.load(user.id)
        if state is None:
            raise NoActiveSession()

        workout = db.session.get(Workout, state.current_workout)
        score = workout.score_for(user) if workout is not None else None
        if score is None:
            self.store.clear(user.id)
            raise NotFound(f"No score for workout {state.current_workout}")
        return state, workout, score

    @staticmethod
    def _record(state, workout, score, result, now):
        link = workout.link_for(result.exercise_id)
        if link is None:
            raise InvalidInput(f"Exercise {result.exercise_id} is not part of workout {workout.id}")
        try:
            points = float(result.points or 0)
        except (TypeError, ValueError):
            raise InvalidInput("points must be a number")
        if not math.isfinite(points):
            raise InvalidInput("points must be a finite number")
        if result.exercise_id in state.seen_exercises:
            return

        earned = min(max(points, 0.0), link.points)
        if not state.reviewing and not score.closed:
            score.record_award(result.exercise_id, earned, workout.exercise_ids(), now,
                               max_score=workout.total_points())

        state.seen_exercises.append(result.exercise_id)
        state.workout_feedback[str(result.exercise_id)] = {
            'exercise_id': result.exercise_id,
            'name': link.exercise.name,
            'points_earned': earned,
            'points_possible': link.points,
            'correct': result.correct,
            'feedback': result.feedback
        }
