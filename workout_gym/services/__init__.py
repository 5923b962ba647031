"""
Services package
"""
from workout_gym.services.access_policy import AccessPolicyService
from workout_gym.services.capability import RoleCapability, TermShutdownState
from workout_gym.services.import_service import ImportService
from workout_gym.services.practice_session import PracticeSessionService
from workout_gym.services.reconciliation_service import ReconciliationService
from workout_gym.services.search_service import SearchService

__all__ = [
    'AccessPolicyService',
    'ImportService',
    'PracticeSessionService',
    'ReconciliationService',
    'RoleCapability',
    'SearchService',
    'TermShutdownState'
]
