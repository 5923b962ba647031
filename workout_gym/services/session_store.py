"""
Practice session storage

The practice state machine keeps its transient state (current workout,
feedback so far, seen exercises) outside the database, keyed by user id.
Two backends: the signed Flask session cookie, or Redis.
"""
import json
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional

import redis
from flask import current_app, session


@dataclass
class PracticeSessionState:
    """Transient state of one user's practice session"""

    current_workout: int
    workout_offering: Optional[int] = None
    workout_feedback: Dict[str, dict] = field(default_factory=dict)  # exercise id -> feedback entry
    seen_exercises: List[int] = field(default_factory=list)
    remaining_exercises: List[int] = field(default_factory=list)
    reviewing: bool = False  # Revisiting a closed score, nothing is recorded
    late: bool = False  # Started or resumed after the soft deadline

    def to_dict(self):
        return asdict(self)

    @classmethod
    def from_dict(cls, data):
        return cls(
            current_workout=int(data['current_workout']),
            workout_offering=data.get('workout_offering'),
            workout_feedback=dict(data.get('workout_feedback') or {}),
            seen_exercises=[int(ex_id) for ex_id in data.get('seen_exercises') or []],
            remaining_exercises=[int(ex_id) for ex_id in data.get('remaining_exercises') or []],
            reviewing=bool(data.get('reviewing', False)),
            late=bool(data.get('late', False))
        )


class SessionStore:
    """Per-user key-value scope for practice session state"""

    def load(self, user_id) -> Optional[PracticeSessionState]:
        raise NotImplementedError

    def save(self, user_id, state: PracticeSessionState):
        raise NotImplementedError

    def clear(self, user_id):
        raise NotImplementedError

    @staticmethod
    def key_for(user_id):
        return f'practice_session:{user_id}'


class FlaskSessionStore(SessionStore):
    """Keeps state in the signed session cookie of the current request"""

    def load(self, user_id):
        data = session.get(self.key_for(user_id))
        if not data:
            return None
        return PracticeSessionState.from_dict(data)

    def save(self, user_id, state):
        session[self.key_for(user_id)] = state.to_dict()

    def clear(self, user_id):
        session.pop(self.key_for(user_id), None)


class RedisSessionStore(SessionStore):
    """Keeps state in Redis as JSON with a sliding TTL"""

    def __init__(self, client, ttl: int = 86400):
        self.redis = client
        self.ttl = ttl

    @classmethod
    def from_url(cls, url, ttl=86400):
        client = redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5
        )
        return cls(client, ttl)

    def load(self, user_id):
        value = self.redis.get(self.key_for(user_id))
        if not value:
            return None
        try:
            return PracticeSessionState.from_dict(json.loads(value))
        except (ValueError, KeyError, TypeError) as e:
            current_app.logger.warning(f"[SessionStore] Discarding unreadable session for user {user_id}: {e}")
            self.clear(user_id)
            return None

    def save(self, user_id, state):
        self.redis.setex(self.key_for(user_id), self.ttl, json.dumps(state.to_dict()))

    def clear(self, user_id):
        self.redis.delete(self.key_for(user_id))


def create_session_store(app) -> SessionStore:
    """Build the session store selected by SESSION_STORE"""
    backend = app.config.get('SESSION_STORE', 'flask')
    if backend == 'redis':
        app.logger.info(f"[SessionStore] Using Redis at {app.config['REDIS_URL']}")
        return RedisSessionStore.from_url(app.config['REDIS_URL'], app.config.get('PRACTICE_SESSION_TTL', 86400))
    if backend == 'flask':
        return FlaskSessionStore()
    raise ValueError(f"Unknown SESSION_STORE: {backend}")


def get_session_store() -> SessionStore:
    """Session store of the current application"""
    return current_app.extensions['practice_session_store']
