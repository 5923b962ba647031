"""
Workout Score model
"""
from datetime import datetime, timedelta
from workout_gym import db


class WorkoutScore(db.Model):
    """Accumulated score of one user on one workout"""
    __tablename__ = 'workout_scores'
    __table_args__ = (
        db.UniqueConstraint('user_id', 'workout_id', name='uq_workout_score_user_workout'),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    workout_id = db.Column(db.Integer, db.ForeignKey('workouts.id'), nullable=False, index=True)
    workout_offering_id = db.Column(db.Integer, db.ForeignKey('workout_offerings.id', ondelete='SET NULL'),
                                    nullable=True)

    # Points
    score = db.Column(db.Float, nullable=False, default=0.0)

    # Progress
    exercises_completed = db.Column(db.Integer, nullable=False, default=0)
    exercises_remaining = db.Column(db.Integer, nullable=False, default=0)
    closed = db.Column(db.Boolean, nullable=False, default=False)

    started_at = db.Column(db.DateTime, default=datetime.utcnow)
    last_attempted_at = db.Column(db.DateTime)
    completed_at = db.Column(db.DateTime)

    awards = db.relationship('ExerciseAward', backref='workout_score', lazy=True,
                             cascade='all, delete-orphan', order_by='ExerciseAward.id')

    def __repr__(self):
        return f'<WorkoutScore user={self.user_id} workout={self.workout_id} score={self.score}>'

    def award_for(self, exercise_id):
        return next((award for award in self.awards if award.exercise_id == exercise_id), None)

    def record_award(self, exercise_id, points, exercise_ids, now=None, max_score=None):
        """
        Record the points earned on one exercise and recompute the totals

        An exercise is credited once per score; a later attempt only
        raises its award to the better result.

        Args:
            exercise_id: Exercise attempted
            points: Points earned (negative values count as zero)
            exercise_ids: Ids of the exercises currently in the workout
            now: Attempt time (defaults to utcnow)
            max_score: Upper bound for the accumulated score
        """
        now = now or datetime.utcnow()
        points = max(points, 0.0)
        award = self.award_for(exercise_id)
        if award is None:
            self.awards.append(ExerciseAward(exercise_id=exercise_id, points=points, awarded_at=now))
        elif points > award.points:
            award.points = points
            award.awarded_at = now

        counted = [award for award in self.awards if award.exercise_id in exercise_ids]
        self.score = sum(award.points for award in counted)
        if max_score is not None:
            self.score = min(self.score, max_score)
        self.exercises_completed = len(counted)
        self.exercises_remaining = max(len(exercise_ids) - len(counted), 0)
        self.last_attempted_at = now
        if self.exercises_remaining == 0:
            self.completed_at = now

    def deadline_for(self, time_limit):
        """When a timed attempt runs out, or None if untimed"""
        if not time_limit or self.started_at is None:
            return None
        return self.started_at + timedelta(minutes=time_limit)

    def close(self, now=None):
        self.closed = True
        if self.completed_at is None:
            self.completed_at = now or datetime.utcnow()


class ExerciseAward(db.Model):
    """Points credited to a score for one exercise"""
    __tablename__ = 'exercise_awards'
    __table_args__ = (
        db.UniqueConstraint('workout_score_id', 'exercise_id', name='uq_exercise_award_score_exercise'),
    )

    id = db.Column(db.Integer, primary_key=True)
    workout_score_id = db.Column(db.Integer, db.ForeignKey('workout_scores.id', ondelete='CASCADE'),
                                 nullable=False, index=True)
    exercise_id = db.Column(db.Integer, db.ForeignKey('exercises.id'), nullable=False)
    points = db.Column(db.Float, nullable=False, default=0.0)
    awarded_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<ExerciseAward score={self.workout_score_id} exercise={self.exercise_id} points={self.points}>'
