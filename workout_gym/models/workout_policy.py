"""
Workout Policy model
"""
from workout_gym import db


class WorkoutPolicy(db.Model):
    """Shared review/feedback policy referenced by workout offerings"""
    __tablename__ = 'workout_policies'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False, unique=True)
    description = db.Column(db.Text)

    # Students may not review a closed workout until the offering shuts down
    no_review_before_close = db.Column(db.Boolean, nullable=False, default=False)

    # Relationships
    workout_offerings = db.relationship('WorkoutOffering', backref='workout_policy', lazy='dynamic')

    @classmethod
    def defaults(cls):
        """Policies created on a fresh installation"""
        return [
            cls(name='Practice', description='Open practice with review at any time',
                no_review_before_close=False),
            cls(name='Exam', description='No review until the offering closes',
                no_review_before_close=True),
        ]

    def __repr__(self):
        return f'<WorkoutPolicy {self.name}>'
