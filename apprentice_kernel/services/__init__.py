"""Kernel services: access decisions, review workflows, feedback, profiles."""

from apprentice_kernel.services.access_policy_service import AccessPolicyService
from apprentice_kernel.services.evidence_service import EvidenceService
from apprentice_kernel.services.feedback_service import FeedbackService
from apprentice_kernel.services.notification import LoggingNotifier, Notifier
from apprentice_kernel.services.otj_log_service import OtjLogService
from apprentice_kernel.services.profile_service import UNCHANGED, ProfileService

__all__ = [
    "AccessPolicyService",
    "EvidenceService",
    "FeedbackService",
    "LoggingNotifier",
    "Notifier",
    "OtjLogService",
    "ProfileService",
    "UNCHANGED",
]
