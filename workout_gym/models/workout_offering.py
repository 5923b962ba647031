"""
Workout Offering model
"""
from datetime import datetime
from workout_gym import db
from workout_gym.utils.dates import to_epoch


class WorkoutOffering(db.Model):
    """Deployment of a workout to one course offering"""
    __tablename__ = 'workout_offerings'
    __table_args__ = (
        db.UniqueConstraint('workout_id', 'course_offering_id', name='uq_workout_offering'),
    )

    id = db.Column(db.Integer, primary_key=True)
    workout_id = db.Column(db.Integer, db.ForeignKey('workouts.id'), nullable=False, index=True)
    course_offering_id = db.Column(db.Integer, db.ForeignKey('course_offerings.id'), nullable=False, index=True)
    workout_policy_id = db.Column(db.Integer, db.ForeignKey('workout_policies.id'), nullable=True)

    time_limit = db.Column(db.Integer, nullable=True)  # Minutes, None for untimed
    opening_date = db.Column(db.DateTime, nullable=True)
    soft_deadline = db.Column(db.DateTime, nullable=True)
    hard_deadline = db.Column(db.DateTime, nullable=True)
    published = db.Column(db.Boolean, nullable=False, default=True)
    most_recent = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    student_extensions = db.relationship('StudentExtension', backref='workout_offering', lazy='dynamic',
                                         cascade='all, delete-orphan')
    workout_scores = db.relationship('WorkoutScore', backref='workout_offering', lazy='dynamic')

    def extension_for(self, user):
        """Return the user's StudentExtension for this offering, or None"""
        if user is None:
            return None
        return self.student_extensions.filter_by(user_id=user.id).first()

    def to_dict(self):
        return {
            'id': self.id,
            'course_offering_id': self.course_offering_id,
            'policy_id': self.workout_policy_id,
            'time_limit': self.time_limit,
            'opening_date': to_epoch(self.opening_date),
            'soft_deadline': to_epoch(self.soft_deadline),
            'hard_deadline': to_epoch(self.hard_deadline),
            'published': self.published,
            'most_recent': self.most_recent
        }

    def __repr__(self):
        return f'<WorkoutOffering {self.id} workout={self.workout_id} course_offering={self.course_offering_id}>'
