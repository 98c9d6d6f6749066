"""Read-only selectors for the apprentice kernel."""

from apprentice_kernel.selectors.association_resolver import AssociationResolver
from apprentice_kernel.selectors.evidence_selector import EvidenceSelector
from apprentice_kernel.selectors.feedback_selector import FeedbackSelector
from apprentice_kernel.selectors.otj_log_selector import OtjLogSelector
from apprentice_kernel.selectors.resource_selector import ResourceSelector

__all__ = [
    "AssociationResolver",
    "EvidenceSelector",
    "FeedbackSelector",
    "OtjLogSelector",
    "ResourceSelector",
]
