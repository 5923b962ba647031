"""
Exercise model
"""
from datetime import datetime
from workout_gym import db


class Exercise(db.Model):
    """Gradable exercise that workouts link to"""
    __tablename__ = 'exercises'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    question = db.Column(db.Text)  # The exercise prompt
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationships
    exercise_workouts = db.relationship('ExerciseWorkout', backref='exercise', lazy='dynamic',
                                        cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Exercise {self.id} {self.name}>'
