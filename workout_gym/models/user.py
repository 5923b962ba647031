"""
User model
"""
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from datetime import datetime
from workout_gym import db


class User(UserMixin, db.Model):
    """User model for authentication"""
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    email = db.Column(db.String(120), unique=True, nullable=True)
    password_hash = db.Column(db.String(255), nullable=False, default='')
    first_name = db.Column(db.String(100))
    last_name = db.Column(db.String(100))
    role = db.Column(db.String(20), nullable=False, default='student')  # 'admin', 'instructor', or 'student'
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Score of the workout the user is currently practicing
    current_workout_score_id = db.Column(
        db.Integer,
        db.ForeignKey('workout_scores.id', use_alter=True, name='fk_users_current_workout_score', ondelete='SET NULL'),
        nullable=True
    )

    # Relationships
    workout_scores = db.relationship('WorkoutScore', backref='user', lazy='dynamic',
                                     foreign_keys='WorkoutScore.user_id', cascade='all, delete-orphan')
    current_workout_score = db.relationship('WorkoutScore', foreign_keys=[current_workout_score_id],
                                            post_update=True)
    student_extensions = db.relationship('StudentExtension', backref='user', lazy='dynamic',
                                         cascade='all, delete-orphan')
    enrollments = db.relationship('CourseEnrollment', backref='user', lazy='dynamic',
                                  cascade='all, delete-orphan')

    def set_password(self, password):
        """Hash and set password"""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """Check if password matches hash"""
        return check_password_hash(self.password_hash, password)

    @property
    def is_admin(self):
        return self.role == 'admin'

    @property
    def display_name(self):
        """Full name when known, username otherwise"""
        name = ' '.join(part for part in (self.first_name, self.last_name) if part)
        return name or self.username

    def __repr__(self):
        return f'<User {self.username} ({self.role})>'
