"""
Workout routes
"""
import math

from flask import current_app, jsonify, request, url_for
from flask_login import current_user, login_required

from workout_gym import db
from workout_gym.errors import InvalidInput, NoActiveSession, NotFound, Unauthorized, WorkoutGymError
from workout_gym.models.course import Course
from workout_gym.models.workout import Workout
from workout_gym.models.workout_offering import WorkoutOffering
from workout_gym.services.capability import RoleCapability
from workout_gym.services.practice_session import SESSION_COMPLETE, ExerciseResult, PracticeSessionService
from workout_gym.services.reconciliation_service import ReconciliationService
from workout_gym.services.search_service import SearchService
from workout_gym.workouts import workouts_bp

COMMON_FIELDS = ('policy_id', 'time_limit', 'published', 'most_recent')

capability = RoleCapability()
reconciliation_service = ReconciliationService()
search_service = SearchService(capability)
practice_service = PracticeSessionService()


@workouts_bp.errorhandler(WorkoutGymError)
def handle_workout_error(error):
    """Answer domain errors as JSON"""
    current_app.logger.info(f"[Workouts] {request.method} {request.path}: {error.message}")
    body = error.to_dict()
    if isinstance(error, NoActiveSession):
        body['redirect'] = url_for('workouts.gym')
    return jsonify(body), error.status_code


def _user():
    return current_user if current_user.is_authenticated else None


def _get_workout(workout_id):
    workout = db.session.get(Workout, workout_id)
    if workout is None:
        raise NotFound('Workout not found')
    return workout


def _require(action, resource):
    if not capability.check(_user(), action, resource):
        raise Unauthorized(f'Unauthorized to {action} workout')


def _payload():
    data = request.get_json(silent=True)
    if data is None:
        data = request.form.to_dict()
    if not isinstance(data, dict):
        raise InvalidInput('Request body must be an object')
    return data


def _summary(workout):
    return {
        'id': workout.id,
        'name': workout.name,
        'description': workout.description,
        'is_public': workout.is_public,
        'exercise_count': workout.exercise_count
    }


def _next_exercise_response(state, next_exercise):
    body = {
        'success': True,
        'complete': next_exercise is SESSION_COMPLETE,
        'workout_id': state.current_workout if state else None,
        'late': state.late if state else False
    }
    if next_exercise is SESSION_COMPLETE:
        body['evaluate_url'] = url_for('workouts.evaluate')
    else:
        body['exercise_id'] = next_exercise
    return jsonify(body)


@workouts_bp.route('/gym')
def gym():
    """Most recent public workouts"""
    return jsonify({
        'success': True,
        'workouts': [_summary(workout) for workout in search_service.gym()]
    })


@workouts_bp.route('/search', methods=['POST'])
def search():
    """Search workouts, falling back to a general listing"""
    data = _payload()

    course = None
    if data.get('course'):
        course = db.session.get(Course, data['course'])
        if course is None:
            raise NotFound('Course not found')

    workouts, message = search_service.search_with_fallback(
        data.get('search'),
        _user(),
        course,
        bool(data.get('offerings'))
    )
    return jsonify({
        'success': True,
        'message': message,
        'workouts': [_summary(workout) for workout in workouts]
    })


@workouts_bp.route('/download.json')
@login_required
def download():
    """Export every workout the user can read"""
    workouts = [workout for workout in Workout.query.order_by(Workout.id).all()
                if capability.check(current_user, 'read', workout)]
    return jsonify([workout.to_dict() for workout in workouts])


@workouts_bp.route('/embed/<path:resource_name>')
def embed(resource_name):
    """Locate a public workout by name for embedding"""
    workout = search_service.find_public_by_name(resource_name)
    if workout is None:
        raise NotFound('Sorry, there are no public workouts with that name.')
    return jsonify({
        'success': True,
        'workout_id': workout.id,
        'practice_url': url_for('workouts.practice', workout_id=workout.id)
    })


@workouts_bp.route('/', methods=['POST'])
@login_required
def create():
    """Create a workout from the editor payload"""
    _require('create', None)
    data = _payload()
    common = {name: data[name] for name in COMMON_FIELDS if name in data}

    workout, workout_offering_id = reconciliation_service.create_workout(current_user, data, common)
    return jsonify({
        'success': True,
        'workout_id': workout.id,
        'workout_offering_id': workout_offering_id
    }), 201


@workouts_bp.route('/<int:workout_id>')
def show(workout_id):
    """Workout details"""
    workout = _get_workout(workout_id)
    _require('read', workout)
    return jsonify({'success': True, 'workout': workout.to_dict()})


@workouts_bp.route('/<int:workout_id>/edit')
@login_required
def edit(workout_id):
    """Current editor state of a workout"""
    workout = _get_workout(workout_id)
    _require('edit', workout)
    return jsonify({'success': True, 'workout': reconciliation_service.describe(workout)})


@workouts_bp.route('/<int:workout_id>', methods=['PUT', 'PATCH'])
@login_required
def update(workout_id):
    """Reconcile a workout with the editor payload"""
    workout = _get_workout(workout_id)
    _require('update', workout)
    data = _payload()
    common = {name: data[name] for name in COMMON_FIELDS if name in data}

    workout_offering_id = reconciliation_service.reconcile(workout, data, common)
    return jsonify({
        'success': True,
        'workout_id': workout.id,
        'workout_offering_id': workout_offering_id
    })


@workouts_bp.route('/<int:workout_id>', methods=['DELETE'])
@login_required
def destroy(workout_id):
    """Delete a workout"""
    workout = _get_workout(workout_id)
    _require('destroy', workout)
    reconciliation_service.destroy_workout(workout)
    return jsonify({'success': True, 'message': 'Workout was successfully destroyed.'})


@workouts_bp.route('/<int:workout_id>/practice', methods=['POST'])
@login_required
def practice(workout_id):
    """Start practicing a workout and return its first exercise"""
    workout = _get_workout(workout_id)
    _require('practice', workout)
    data = request.get_json(silent=True) or {}

    workout_offering = None
    if data.get('workout_offering_id'):
        workout_offering = db.session.get(WorkoutOffering, data['workout_offering_id'])
        if workout_offering is None:
            raise NotFound('Workout offering not found')

    practice_service.start(current_user, workout, workout_offering)
    next_exercise = practice_service.advance(current_user)
    return _next_exercise_response(practice_service.store.load(current_user.id), next_exercise)


@workouts_bp.route('/practice/advance', methods=['POST'])
@login_required
def advance():
    """Record an exercise result and return the next exercise"""
    data = request.get_json(silent=True) or {}

    result = None
    if data.get('exercise_id') is not None:
        try:
            result = ExerciseResult(
                exercise_id=int(data['exercise_id']),
                points=float(data.get('points') or 0),
                correct=data.get('correct'),
                feedback=data.get('feedback')
            )
        except (TypeError, ValueError):
            raise InvalidInput('exercise_id and points must be numbers')
        if not math.isfinite(result.points):
            raise InvalidInput('points must be a finite number')

    next_exercise = practice_service.advance(current_user, result)
    state = practice_service.store.load(current_user.id)
    return _next_exercise_response(state, next_exercise)


@workouts_bp.route('/evaluate', methods=['POST'])
@login_required
def evaluate():
    """Close the practice session and report the final score"""
    result = practice_service.close(current_user)
    return jsonify({'success': True, **result.to_dict()})
