"""ORM models for the apprentice kernel."""

from apprentice_kernel.models.evidence import EVIDENCE_CONTENT_FIELDS, EvidenceItem
from apprentice_kernel.models.feedback import FeedbackItem
from apprentice_kernel.models.learner_profile import LearnerProfile
from apprentice_kernel.models.learning_goal import LearningGoal
from apprentice_kernel.models.otj_log import OtjLogEntry
from apprentice_kernel.models.task import Task

__all__ = [
    "EVIDENCE_CONTENT_FIELDS",
    "EvidenceItem",
    "FeedbackItem",
    "LearnerProfile",
    "LearningGoal",
    "OtjLogEntry",
    "Task",
]
