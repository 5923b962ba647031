"""
Database models
"""
from workout_gym.models.user import User
from workout_gym.models.course import Course, Term, CourseOffering, CourseEnrollment
from workout_gym.models.exercise import Exercise
from workout_gym.models.workout import Workout, ExerciseWorkout
from workout_gym.models.workout_policy import WorkoutPolicy
from workout_gym.models.workout_offering import WorkoutOffering
from workout_gym.models.student_extension import StudentExtension
from workout_gym.models.workout_score import WorkoutScore, ExerciseAward

__all__ = [
    'User',
    'Course',
    'Term',
    'CourseOffering',
    'CourseEnrollment',
    'Exercise',
    'Workout',
    'ExerciseWorkout',
    'WorkoutPolicy',
    'WorkoutOffering',
    'StudentExtension',
    'WorkoutScore',
    'ExerciseAward'
]
