"""
Access Policy Service - decides whether practice or review is permitted
"""
import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from workout_gym.services.capability import ShutdownState, TermShutdownState


class DenialReason(enum.Enum):
    NOT_YET_OPEN = 'not_yet_open'
    PAST_DEADLINE = 'past_deadline'
    REVIEW_LOCKED_UNTIL_CLOSE = 'review_locked_until_close'


@dataclass(frozen=True)
class AccessDecision:
    """Allowed, or denied with a reason"""

    allowed: bool
    reason: Optional[DenialReason] = None
    late: bool = False  # Allowed past the soft deadline

    @classmethod
    def allow(cls, late=False):
        return cls(True, late=late)

    @classmethod
    def deny(cls, reason):
        return cls(False, reason)

    def __bool__(self):
        return self.allowed


@dataclass(frozen=True)
class EffectiveWindow:
    """Dates and time limit that apply to one user on one offering"""

    opening_date: Optional[datetime]
    soft_deadline: Optional[datetime]
    hard_deadline: Optional[datetime]
    time_limit: Optional[int]
    from_extension: bool = False

    def is_open(self, now):
        return self.opening_date is None or now >= self.opening_date

    def is_past_soft_deadline(self, now):
        return self.soft_deadline is not None and now > self.soft_deadline

    def is_past_hard_deadline(self, now):
        return self.hard_deadline is not None and now > self.hard_deadline


class AccessPolicyService:
    """Evaluates offering dates, student extensions and review policies"""

    def __init__(self, shutdown_state: ShutdownState = None):
        self.shutdown_state = shutdown_state or TermShutdownState()

    @staticmethod
    def effective_window(user, workout_offering) -> EffectiveWindow:
        """
        Resolve the window for a user

        A student extension replaces all four of the offering's values as a
        unit; it is never merged field by field with the offering.
        """
        extension = workout_offering.extension_for(user)
        source = extension if extension is not None else workout_offering
        return EffectiveWindow(
            opening_date=source.opening_date,
            soft_deadline=source.soft_deadline,
            hard_deadline=source.hard_deadline,
            time_limit=source.time_limit,
            from_extension=extension is not None
        )

    def can_practice(self, user, workout_offering, now=None, resuming=False) -> AccessDecision:
        """
        Decide whether the user may practice on this offering

        Args:
            user: Practicing user
            workout_offering: Offering being practiced
            now: Evaluation time (defaults to utcnow)
            resuming: True when continuing a session already in progress,
                which a passed hard deadline does not invalidate

        Returns:
            AccessDecision, flagged late once the soft deadline has passed
        """
        now = now or datetime.utcnow()
        window = self.effective_window(user, workout_offering)

        if not window.is_open(now):
            return AccessDecision.deny(DenialReason.NOT_YET_OPEN)

        if not resuming and window.is_past_hard_deadline(now):
            return AccessDecision.deny(DenialReason.PAST_DEADLINE)

        return AccessDecision.allow(late=window.is_past_soft_deadline(now))

    def can_review(self, workout_score, workout_offering, now=None) -> AccessDecision:
        """
        Decide whether a finished score may be reviewed

        Review is locked only when the score is closed, the offering's policy
        forbids review before close, and the offering is not shut down.
        """
        if workout_offering is None or not workout_score.closed:
            return AccessDecision.allow()

        policy = workout_offering.workout_policy
        if policy is None or not policy.no_review_before_close:
            return AccessDecision.allow()

        if self.shutdown_state.is_shutdown(workout_offering, now):
            return AccessDecision.allow()

        return AccessDecision.deny(DenialReason.REVIEW_LOCKED_UNTIL_CLOSE)

    @staticmethod
    def time_expired(workout_score, window: EffectiveWindow, now=None) -> bool:
        """True when a timed attempt has run past its time limit"""
        now = now or datetime.utcnow()
        deadline = workout_score.deadline_for(window.time_limit)
        return deadline is not None and now > deadline
