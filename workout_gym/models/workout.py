"""
Workout and ExerciseWorkout models
"""
from datetime import datetime
from workout_gym import db


class Workout(db.Model):
    """Ordered set of graded exercises"""
    __tablename__ = 'workouts'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False, index=True)
    description = db.Column(db.Text)
    is_public = db.Column(db.Boolean, nullable=False, default=False)
    creator_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    creator = db.relationship('User', foreign_keys=[creator_id], backref='created_workouts')
    exercise_workouts = db.relationship('ExerciseWorkout', backref='workout',
                                        order_by='ExerciseWorkout.order',
                                        cascade='all, delete-orphan')
    workout_offerings = db.relationship('WorkoutOffering', backref='workout',
                                        order_by='WorkoutOffering.id',
                                        cascade='all, delete-orphan')
    workout_scores = db.relationship('WorkoutScore', backref='workout', lazy='dynamic',
                                     cascade='all, delete-orphan')

    @property
    def exercise_count(self):
        return len(self.exercise_workouts)

    def exercise_ids(self):
        """Exercise ids in practice order"""
        return [link.exercise_id for link in self.exercise_workouts]

    def link_for(self, exercise_id):
        """Return the ExerciseWorkout for an exercise, or None"""
        for link in self.exercise_workouts:
            if link.exercise_id == exercise_id:
                return link
        return None

    def total_points(self):
        """Maximum score attainable on this workout"""
        return sum(link.points or 0 for link in self.exercise_workouts)

    def score_for(self, user):
        """Return the user's WorkoutScore for this workout, or None"""
        return self.workout_scores.filter_by(user_id=user.id).first()

    def to_dict(self):
        """Exportable representation of the workout and its offerings"""
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'is_public': self.is_public,
            'exercises': [{
                'exercise_id': link.exercise_id,
                'name': link.exercise.name,
                'points': link.points,
                'order': link.order
            } for link in self.exercise_workouts],
            'offerings': [offering.to_dict() for offering in self.workout_offerings]
        }

    def __repr__(self):
        return f'<Workout {self.id} {self.name}>'


class ExerciseWorkout(db.Model):
    """Link between a workout and one of its exercises"""
    __tablename__ = 'exercise_workouts'
    __table_args__ = (
        db.UniqueConstraint('workout_id', 'exercise_id', name='uq_exercise_workout'),
    )

    id = db.Column(db.Integer, primary_key=True)
    workout_id = db.Column(db.Integer, db.ForeignKey('workouts.id'), nullable=False, index=True)
    exercise_id = db.Column(db.Integer, db.ForeignKey('exercises.id'), nullable=False)
    points = db.Column(db.Float, nullable=False, default=1.0)
    order = db.Column(db.Integer, nullable=False)  # 1-based position within the workout

    def __repr__(self):
        return f'<ExerciseWorkout workout={self.workout_id} exercise={self.exercise_id} order={self.order}>'
