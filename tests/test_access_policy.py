from datetime import date, datetime, timedelta

from workout_gym.models import WorkoutScore
from workout_gym.services.access_policy import AccessPolicyService, DenialReason
from workout_gym.services.capability import ShutdownState, TermShutdownState

DAY = datetime(2030, 3, 1)


def day(n):
    return DAY + timedelta(days=n)


class FixedShutdown(ShutdownState):
    def __init__(self, shutdown):
        self.shutdown = shutdown

    def is_shutdown(self, workout_offering, now=None):
        return self.shutdown


def test_not_yet_open_uses_offering_dates(factory):
    student = factory.user()
    offering = factory.offering(factory.workout(), factory.course_offering(), opening_date=day(10))
    policy = AccessPolicyService()

    decision = policy.can_practice(student, offering, now=day(7))
    assert not decision
    assert decision.reason is DenialReason.NOT_YET_OPEN
    assert policy.can_practice(student, offering, now=day(10))


def test_extension_opening_date_overrides_offering(factory):
    student = factory.user()
    offering = factory.offering(factory.workout(), factory.course_offering(), opening_date=day(10))
    factory.extension(offering, student, opening_date=day(5))

    assert AccessPolicyService().can_practice(student, offering, now=day(7))
    assert not AccessPolicyService().can_practice(factory.user(), offering, now=day(7))


def test_extension_replaces_every_field(factory):
    student = factory.user()
    offering = factory.offering(
        factory.workout(), factory.course_offering(),
        opening_date=day(1), hard_deadline=day(3), time_limit=30
    )
    factory.extension(offering, student, soft_deadline=day(20))

    window = AccessPolicyService.effective_window(student, offering)

    assert window.from_extension
    assert window.opening_date is None
    assert window.hard_deadline is None
    assert window.time_limit is None
    assert window.soft_deadline == day(20)


def test_hard_deadline_blocks_new_starts_only(factory):
    student = factory.user()
    offering = factory.offering(factory.workout(), factory.course_offering(), hard_deadline=day(3))
    policy = AccessPolicyService()

    decision = policy.can_practice(student, offering, now=day(4))
    assert decision.reason is DenialReason.PAST_DEADLINE
    assert policy.can_practice(student, offering, now=day(4), resuming=True)
    assert policy.can_practice(student, offering, now=day(3))


def test_practice_past_soft_deadline_is_allowed_but_late(factory):
    student = factory.user()
    offering = factory.offering(factory.workout(), factory.course_offering(),
                                soft_deadline=day(3), hard_deadline=day(6))
    policy = AccessPolicyService()

    assert not policy.can_practice(student, offering, now=day(3)).late

    decision = policy.can_practice(student, offering, now=day(4))
    assert decision
    assert decision.late
    assert decision.reason is None

    factory.extension(offering, student, soft_deadline=day(5))
    assert not policy.can_practice(student, offering, now=day(4)).late


def test_review_lock_requires_all_three_conditions(factory):
    locking = factory.policy(no_review_before_close=True)
    open_policy = factory.policy(no_review_before_close=False)
    workout = factory.workout()
    offering = factory.offering(workout, factory.course_offering(), workout_policy=locking)
    closed = WorkoutScore(closed=True)
    still_open = WorkoutScore(closed=False)

    decision = AccessPolicyService(FixedShutdown(False)).can_review(closed, offering)
    assert not decision
    assert decision.reason is DenialReason.REVIEW_LOCKED_UNTIL_CLOSE

    assert AccessPolicyService(FixedShutdown(False)).can_review(still_open, offering)
    assert AccessPolicyService(FixedShutdown(True)).can_review(closed, offering)

    offering.workout_policy = open_policy
    assert AccessPolicyService(FixedShutdown(False)).can_review(closed, offering)


def test_review_without_policy_is_allowed(factory):
    offering = factory.offering(factory.workout(), factory.course_offering())
    assert AccessPolicyService(FixedShutdown(False)).can_review(WorkoutScore(closed=True), offering)


def test_term_shutdown_follows_term_end(factory):
    ended = factory.offering(factory.workout(), factory.course_offering(term_ends=date(2030, 1, 31)))
    running = factory.offering(factory.workout(), factory.course_offering(term_ends=date(2030, 6, 30)))
    shutdown = TermShutdownState(clock=lambda: datetime(2030, 2, 1))

    assert shutdown.is_shutdown(ended)
    assert not shutdown.is_shutdown(running)
    assert not shutdown.is_shutdown(ended, now=datetime(2030, 1, 31, 12))


def test_time_expired(factory):
    score = WorkoutScore(started_at=day(0))
    offering = factory.offering(factory.workout(), factory.course_offering(), time_limit=30)
    window = AccessPolicyService.effective_window(factory.user(), offering)

    assert not AccessPolicyService.time_expired(score, window, day(0) + timedelta(minutes=30))
    assert AccessPolicyService.time_expired(score, window, day(0) + timedelta(minutes=31))
