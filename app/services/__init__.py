"""
Business logic services for the logistics automation core.
"""

from .alert_rules import AlertRuleEvaluator, AlertThresholds, ResolutionMode
from .alert_service import AlertService
from .action_applier import ActionApplier, ExtractionThresholds
from .entity_matcher import EntityMatcher
from .extraction_service import ExtractionService
from .llm_service import LLMService
from .notification_service import NotificationService
from .storage_service import StorageService

__all__ = [
    "ActionApplier",
    "AlertRuleEvaluator",
    "AlertService",
    "AlertThresholds",
    "EntityMatcher",
    "ExtractionService",
    "ExtractionThresholds",
    "LLMService",
    "NotificationService",
    "ResolutionMode",
    "StorageService",
]
