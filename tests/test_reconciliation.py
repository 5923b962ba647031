from datetime import datetime

import pytest

from workout_gym import db
from workout_gym.errors import Conflict, InvalidInput, NotFound
from workout_gym.models import ExerciseAward, ExerciseWorkout, StudentExtension, Workout, WorkoutOffering, WorkoutScore
from workout_gym.services.reconciliation_service import ReconciliationService


def _links(workout):
    db.session.expire_all()
    workout = db.session.get(Workout, workout.id)
    return [(link.exercise_id, link.order, link.points) for link in workout.exercise_workouts]


def _snapshot(workout):
    db.session.expire_all()
    workout = db.session.get(Workout, workout.id)
    return {
        'links': [(link.exercise_id, link.order, link.points) for link in workout.exercise_workouts],
        'offerings': [offering.to_dict() for offering in workout.workout_offerings],
        'extensions': sorted(
            (ext.workout_offering_id, ext.user_id, ext.time_limit)
            for offering in workout.workout_offerings
            for ext in offering.student_extensions
        )
    }


def test_exercise_order_follows_submission(factory):
    exercises = [factory.exercise() for _ in range(4)]
    workout = factory.workout(exercises=exercises[:2])

    payload = {'exercises': [
        {'id': exercises[3].id, 'points': 5},
        {'id': exercises[0].id, 'points': 2},
        {'id': exercises[2].id}
    ]}
    ReconciliationService().reconcile(workout, payload)

    assert _links(workout) == [
        (exercises[3].id, 1, 5.0),
        (exercises[0].id, 2, 2.0),
        (exercises[2].id, 3, 1.0)
    ]


def test_reconcile_is_idempotent(factory):
    exercises = [factory.exercise() for _ in range(3)]
    course_offering = factory.course_offering()
    student = factory.user()
    workout = factory.workout()
    payload = {
        'exercises': [{'id': ex.id, 'points': 3} for ex in reversed(exercises)],
        'course_offerings': [course_offering.id],
    }
    common = {'time_limit': 30, 'published': True}

    service = ReconciliationService()
    service.reconcile(workout, payload, common)
    service.reconcile(workout, {
        'exercises': payload['exercises'],
        'extensions': [{'user_id': student.id, 'course_offering_id': course_offering.id, 'time_limit': 60}]
    })
    once = _snapshot(workout)
    service.reconcile(workout, payload, common)

    assert _snapshot(workout) == once
    assert [order for _, order, _ in once['links']] == [1, 2, 3]
    assert len(once['offerings']) == 1


def test_unknown_exercise_leaves_workout_unchanged(factory):
    exercises = [factory.exercise() for _ in range(2)]
    course_offering = factory.course_offering()
    workout = factory.workout(exercises=exercises)
    offering = factory.offering(workout, course_offering, time_limit=20)
    factory.extension(offering, factory.user(), time_limit=40)
    before = _snapshot(workout)

    with pytest.raises(NotFound):
        ReconciliationService().reconcile(workout, {
            'removed_offerings': [offering.id],
            'exercises': [{'id': exercises[1].id}, {'id': 9999}]
        })

    assert _snapshot(workout) == before


def test_malformed_payload_is_rejected_before_mutation(factory):
    exercise = factory.exercise()
    workout = factory.workout(exercises=[exercise])
    before = _snapshot(workout)

    with pytest.raises(InvalidInput):
        ReconciliationService().reconcile(workout, {
            'removed_exercises': [workout.exercise_workouts[0].id],
            'exercises': '[{"id": 1'
        })
    with pytest.raises(InvalidInput):
        ReconciliationService().reconcile(workout, {'exercises': [{'id': exercise.id, 'points': -1}]})
    with pytest.raises(InvalidInput):
        ReconciliationService().reconcile(workout, {'exercises': [{'id': exercise.id}, {'id': exercise.id}]})

    assert _snapshot(workout) == before


def test_missing_exercises_list_is_rejected(factory):
    exercises = [factory.exercise() for _ in range(2)]
    course_offering = factory.course_offering()
    workout = factory.workout(exercises=exercises)
    before = _snapshot(workout)

    with pytest.raises(InvalidInput):
        ReconciliationService().reconcile(workout, {'course_offerings': [course_offering.id]})

    assert _snapshot(workout) == before
    assert len(before['links']) == 2


def test_empty_exercises_list_removes_every_link(factory):
    workout = factory.workout(exercises=[factory.exercise() for _ in range(2)])

    ReconciliationService().reconcile(workout, {'exercises': []})

    assert _links(workout) == []


def test_non_finite_points_are_rejected(factory):
    exercise = factory.exercise()
    workout = factory.workout(exercises=[exercise], points=[3.0])

    for points in ('nan', 'inf', float('nan'), float('-inf')):
        with pytest.raises(InvalidInput):
            ReconciliationService().reconcile(workout, {'exercises': [{'id': exercise.id, 'points': points}]})

    assert _links(workout) == [(exercise.id, 1, 3.0)]


def test_json_encoded_change_sets_are_accepted(factory):
    exercises = [factory.exercise() for _ in range(2)]
    workout = factory.workout()

    ReconciliationService().reconcile(workout, {
        'exercises': f'[{{"id": {exercises[1].id}, "points": 4}}, {{"id": "{exercises[0].id}"}}]'
    })

    assert _links(workout) == [(exercises[1].id, 1, 4.0), (exercises[0].id, 2, 1.0)]


def test_removing_missing_ids_is_a_no_op(factory):
    exercise = factory.exercise()
    workout = factory.workout(exercises=[exercise])

    ReconciliationService().reconcile(workout, {
        'removed_exercises': [12345],
        'removed_extensions': [12345],
        'removed_offerings': [12345],
        'exercises': [{'id': exercise.id}]
    })

    assert _links(workout) == [(exercise.id, 1, 1.0)]


def test_removed_link_can_be_readded(factory):
    exercises = [factory.exercise() for _ in range(2)]
    workout = factory.workout(exercises=exercises)
    link_id = workout.exercise_workouts[0].id

    ReconciliationService().reconcile(workout, {
        'removed_exercises': [link_id],
        'exercises': [{'id': exercises[1].id}, {'id': exercises[0].id, 'points': 2}]
    })

    assert _links(workout) == [(exercises[1].id, 1, 1.0), (exercises[0].id, 2, 2.0)]


def test_offerings_share_common_fields_and_return_first_id(factory):
    first = factory.course_offering()
    second = factory.course_offering()
    policy = factory.policy()
    workout = factory.workout()

    offering_id = ReconciliationService().reconcile(
        workout,
        {'exercises': [], 'course_offerings': [first.id, {'id': second.id, 'hard_deadline': 1893456000}]},
        {'policy_id': policy.id, 'time_limit': '45', 'published': 'false', 'most_recent': True}
    )

    offerings = WorkoutOffering.query.filter_by(workout_id=workout.id).order_by(WorkoutOffering.id).all()
    assert offering_id == offerings[0].id
    assert offerings[0].course_offering_id == first.id
    assert all(o.workout_policy_id == policy.id for o in offerings)
    assert all(o.time_limit == 45 and o.published is False for o in offerings)
    assert offerings[1].hard_deadline == datetime(2030, 1, 1)


def test_no_course_offerings_yields_no_id(factory):
    workout = factory.workout()
    assert ReconciliationService().reconcile(workout, {'name': 'Renamed', 'exercises': []}) is None
    assert db.session.get(Workout, workout.id).name == 'Renamed'


def test_removing_offering_removes_its_extensions(factory):
    course_offering = factory.course_offering()
    workout = factory.workout()
    offering = factory.offering(workout, course_offering)
    extension = factory.extension(offering, factory.user())
    offering_id, extension_id = offering.id, extension.id

    ReconciliationService().reconcile(workout, {'removed_offerings': [offering_id], 'exercises': []})

    assert db.session.get(WorkoutOffering, offering_id) is None
    assert db.session.get(StudentExtension, extension_id) is None


def test_extensions_are_created_updated_and_removed(factory):
    course_offering = factory.course_offering()
    student = factory.user()
    other = factory.user()
    workout = factory.workout()
    offering = factory.offering(workout, course_offering)
    service = ReconciliationService()

    service.reconcile(workout, {'exercises': [], 'extensions': [
        {'user_id': student.id, 'course_offering_id': course_offering.id,
         'opening_date': '2030-01-01T00:00:00Z', 'time_limit': 90}
    ]})
    extension = offering.extension_for(student)
    assert extension.opening_date == datetime(2030, 1, 1)
    assert extension.time_limit == 90

    service.reconcile(workout, {'exercises': [], 'extensions': [
        {'id': extension.id, 'user_id': other.id, 'course_offering_id': course_offering.id}
    ]})
    db.session.expire_all()
    assert offering.extension_for(student) is None
    assert offering.extension_for(other).time_limit is None

    service.reconcile(workout, {'exercises': [], 'removed_extensions': [extension.id]})
    assert StudentExtension.query.count() == 0


def test_duplicate_extension_is_a_conflict(factory):
    course_offering = factory.course_offering()
    student = factory.user()
    workout = factory.workout()
    offering = factory.offering(workout, course_offering)
    factory.extension(offering, student, time_limit=10)

    with pytest.raises(Conflict):
        ReconciliationService().reconcile(workout, {'exercises': [], 'extensions': [
            {'user_id': student.id, 'course_offering_id': course_offering.id, 'time_limit': 20}
        ]})
    with pytest.raises(Conflict):
        ReconciliationService().reconcile(workout, {'exercises': [], 'extensions': [
            {'user_id': student.id, 'course_offering_id': course_offering.id},
            {'user_id': student.id, 'course_offering_id': course_offering.id}
        ]})

    db.session.expire_all()
    assert offering.extension_for(student).time_limit == 10


def test_extension_for_unoffered_course_is_not_found(factory):
    exercises = [factory.exercise() for _ in range(2)]
    workout = factory.workout(exercises=exercises, name='Loops')
    course_offering = factory.course_offering()
    before = _links(workout)

    with pytest.raises(NotFound):
        ReconciliationService().reconcile(workout, {
            'name': 'Renamed',
            'exercises': [{'id': exercises[1].id, 'points': 4}, {'id': exercises[0].id}],
            'extensions': [{'user_id': factory.user().id, 'course_offering_id': course_offering.id}]
        })

    assert _links(workout) == before
    assert [link[0] for link in before] == [exercises[0].id, exercises[1].id]
    assert db.session.get(Workout, workout.id).name == 'Loops'


def test_unknown_policy_or_course_offering_is_not_found(factory):
    workout = factory.workout()
    with pytest.raises(NotFound):
        ReconciliationService().reconcile(workout, {'exercises': [], 'course_offerings': [777]})
    with pytest.raises(NotFound):
        ReconciliationService().reconcile(workout, {'exercises': []}, {'policy_id': 777})


def test_create_workout_sets_creator(factory):
    instructor = factory.user(role='instructor')
    exercise = factory.exercise()
    course_offering = factory.course_offering()

    workout, offering_id = ReconciliationService().create_workout(instructor, {
        'name': 'Loops',
        'description': 'for and while',
        'is_public': True,
        'exercises': [{'id': exercise.id, 'points': 10}],
        'course_offerings': [course_offering.id]
    })

    assert workout.creator_id == instructor.id
    assert workout.is_public is True
    assert workout.total_points() == 10.0
    assert db.session.get(WorkoutOffering, offering_id).course_offering_id == course_offering.id


def test_create_workout_requires_a_name(factory):
    with pytest.raises(InvalidInput):
        ReconciliationService().create_workout(factory.user(role='instructor'), {'exercises': []})
    assert Workout.query.count() == 0


def test_destroy_workout_removes_dependents(factory):
    student = factory.user()
    exercise = factory.exercise()
    workout = factory.workout(exercises=[exercise])
    offering = factory.offering(workout, factory.course_offering())
    factory.extension(offering, student)
    score = WorkoutScore(user=student, workout=workout, exercises_remaining=1)
    score.record_award(exercise.id, 1.0, [exercise.id])
    db.session.add(score)
    db.session.commit()
    student.current_workout_score = score
    db.session.commit()

    ReconciliationService().destroy_workout(workout)
    db.session.expire_all()

    assert Workout.query.count() == 0
    assert ExerciseWorkout.query.count() == 0
    assert WorkoutOffering.query.count() == 0
    assert StudentExtension.query.count() == 0
    assert WorkoutScore.query.count() == 0
    assert ExerciseAward.query.count() == 0
    assert student.current_workout_score_id is None


def test_describe_matches_editor_shape(factory):
    exercise = factory.exercise(name='Sum')
    workout = factory.workout(exercises=[exercise], points=[3.0])
    course_offering = factory.course_offering()
    offering = factory.offering(workout, course_offering, time_limit=15)
    student = factory.user()
    factory.extension(offering, student, hard_deadline=datetime(2030, 1, 1))

    state = ReconciliationService.describe(workout)

    assert state['exercises'] == [{
        'id': exercise.id, 'name': 'Sum', 'points': 3.0,
        'exercise_workout_id': workout.exercise_workouts[0].id
    }]
    assert state['time_limit'] == 15
    assert state['student_extensions'][0]['student_id'] == student.id
    assert state['student_extensions'][0]['hard_deadline'] == 1893456000
