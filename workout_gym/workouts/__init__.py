"""
Workouts blueprint
"""
from flask import Blueprint

workouts_bp = Blueprint('workouts', __name__)

from workout_gym.workouts import routes  # noqa: E402,F401
