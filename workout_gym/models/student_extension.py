"""
Student Extension model
"""
from workout_gym import db


class StudentExtension(db.Model):
    """Per-student override of an offering's dates and time limit"""
    __tablename__ = 'student_extensions'
    __table_args__ = (
        db.UniqueConstraint('workout_offering_id', 'user_id', name='uq_student_extension'),
    )

    id = db.Column(db.Integer, primary_key=True)
    workout_offering_id = db.Column(db.Integer, db.ForeignKey('workout_offerings.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)

    opening_date = db.Column(db.DateTime, nullable=True)
    soft_deadline = db.Column(db.DateTime, nullable=True)
    hard_deadline = db.Column(db.DateTime, nullable=True)
    time_limit = db.Column(db.Integer, nullable=True)  # Minutes

    def __repr__(self):
        return f'<StudentExtension offering={self.workout_offering_id} user={self.user_id}>'
