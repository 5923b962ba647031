"""
Course, term and course offering models
"""
from datetime import datetime
from workout_gym import db


class Course(db.Model):
    """Course taught across terms, e.g. "CS 1114" """
    __tablename__ = 'courses'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    number = db.Column(db.String(30), nullable=False, unique=True)  # e.g., "CS 1114"

    # Relationships
    course_offerings = db.relationship('CourseOffering', backref='course', lazy='dynamic',
                                       cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Course {self.number}>'


class Term(db.Model):
    """Academic term, e.g. "Fall 2026" """
    __tablename__ = 'terms'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(60), nullable=False)
    starts_on = db.Column(db.Date, nullable=False)
    ends_on = db.Column(db.Date, nullable=False)

    # Relationships
    course_offerings = db.relationship('CourseOffering', backref='term', lazy='dynamic')

    def has_ended(self, now=None):
        now = now or datetime.utcnow()
        return self.ends_on < now.date()

    def __repr__(self):
        return f'<Term {self.name}>'


class CourseOffering(db.Model):
    """One section of a course in a term"""
    __tablename__ = 'course_offerings'

    id = db.Column(db.Integer, primary_key=True)
    course_id = db.Column(db.Integer, db.ForeignKey('courses.id'), nullable=False)
    term_id = db.Column(db.Integer, db.ForeignKey('terms.id'), nullable=False)
    label = db.Column(db.String(60), nullable=False, default='')  # e.g., "MWF 10:10"

    # Relationships
    enrollments = db.relationship('CourseEnrollment', backref='course_offering', lazy='dynamic',
                                  cascade='all, delete-orphan')
    workout_offerings = db.relationship('WorkoutOffering', backref='course_offering', lazy='dynamic')

    @property
    def display_name_with_term(self):
        return f'{self.course.number} ({self.label}) - {self.term.name}'

    def __repr__(self):
        return f'<CourseOffering {self.id} course={self.course_id} term={self.term_id}>'


class CourseEnrollment(db.Model):
    """Membership of a user in a course offering"""
    __tablename__ = 'course_enrollments'
    __table_args__ = (
        db.UniqueConstraint('user_id', 'course_offering_id', name='uq_enrollment_user_offering'),
    )

    STAFF_ROLES = ('instructor', 'grader')

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    course_offering_id = db.Column(db.Integer, db.ForeignKey('course_offerings.id'), nullable=False, index=True)
    role = db.Column(db.String(20), nullable=False, default='student')  # 'student', 'instructor', or 'grader'

    def __repr__(self):
        return f'<CourseEnrollment user={self.user_id} offering={self.course_offering_id} role={self.role}>'
