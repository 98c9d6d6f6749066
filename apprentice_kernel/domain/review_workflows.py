"""Review Workflows.

State machines for OTJ log verification and evidence review.
"""

from __future__ import annotations

from enum import Enum

from apprentice_kernel.domain.workflow import Guard, Transition, Workflow
from apprentice_kernel.logging_config import get_logger

logger = get_logger("domain.review_workflows")


class OtjLogStatus(str, Enum):
    """OTJ log entry lifecycle states.

    IQA sign-off is not a status: an IQA-stamped entry stays APPROVED with
    ``iqa_verifier_id`` populated.
    """

    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class OtjCategory(str, Enum):
    OTJ = "otj"
    ENRICHMENT = "enrichment"


class EvidenceStatus(str, Enum):
    """Evidence item lifecycle states."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    IN_REVIEW = "in_review"
    APPROVED = "approved"
    NEEDS_REVISION = "needs_revision"


class RelatedItemType(str, Enum):
    """What a feedback record is about."""

    OTJ_LOG = "otj_log"
    EVIDENCE = "evidence"


# -----------------------------------------------------------------------------
# Actions
# -----------------------------------------------------------------------------

SUBMIT = "submit"
VERIFY = "verify"
IQA_VERIFY = "iqa_verify"
REJECT = "reject"
START_REVIEW = "start_review"
APPROVE = "approve"
REQUEST_REVISION = "request_revision"

# Owner operations outside the state machines; used as action names in errors.
DELETE = "delete"
EDIT = "edit"


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

IQA_STAMP_OPEN = Guard(
    name="iqa_stamp_open",
    description="First-tier verification present and IQA stamp unset",
)


# -----------------------------------------------------------------------------
# OTJ Log Workflow
# -----------------------------------------------------------------------------

OTJ_LOG_WORKFLOW = Workflow(
    name="otj_log",
    description="Two-tier verification of on-the-job training hours",
    initial_state=OtjLogStatus.DRAFT.value,
    states=tuple(s.value for s in OtjLogStatus),
    transitions=(
        Transition("draft", "submitted", action=SUBMIT, owner_only=True),
        Transition("submitted", "approved", action=VERIFY),
        Transition("submitted", "rejected", action=REJECT, requires_feedback=True),
        Transition("approved", "approved", action=IQA_VERIFY, guard=IQA_STAMP_OPEN),
    ),
    terminal_states=("rejected",),
)

OTJ_EDITABLE_STATES: frozenset[str] = frozenset({OtjLogStatus.DRAFT.value})
OTJ_DELETABLE_STATES: frozenset[str] = frozenset({OtjLogStatus.DRAFT.value})

logger.info(
    "otj_log_workflow_registered",
    extra={
        "workflow_name": OTJ_LOG_WORKFLOW.name,
        "state_count": len(OTJ_LOG_WORKFLOW.states),
        "transition_count": len(OTJ_LOG_WORKFLOW.transitions),
        "initial_state": OTJ_LOG_WORKFLOW.initial_state,
    },
)


# -----------------------------------------------------------------------------
# Evidence Workflow
# -----------------------------------------------------------------------------

EVIDENCE_WORKFLOW = Workflow(
    name="evidence",
    description="Single-tier review of learner evidence",
    initial_state=EvidenceStatus.DRAFT.value,
    states=tuple(s.value for s in EvidenceStatus),
    transitions=(
        Transition("draft", "submitted", action=SUBMIT, owner_only=True),
        Transition("needs_revision", "submitted", action=SUBMIT, owner_only=True),
        Transition("submitted", "in_review", action=START_REVIEW),
        Transition("in_review", "approved", action=APPROVE),
        Transition(
            "in_review", "needs_revision",
            action=REQUEST_REVISION,
            requires_feedback=True,
        ),
        Transition(
            "submitted", "needs_revision",
            action=REQUEST_REVISION,
            requires_feedback=True,
        ),
    ),
    terminal_states=("approved",),
)

EVIDENCE_LOCKED_STATES: frozenset[str] = frozenset({EvidenceStatus.APPROVED.value})
EVIDENCE_DELETABLE_STATES: frozenset[str] = frozenset({EvidenceStatus.DRAFT.value})

logger.info(
    "evidence_workflow_registered",
    extra={
        "workflow_name": EVIDENCE_WORKFLOW.name,
        "state_count": len(EVIDENCE_WORKFLOW.states),
        "transition_count": len(EVIDENCE_WORKFLOW.transitions),
        "initial_state": EVIDENCE_WORKFLOW.initial_state,
    },
)

ALL_WORKFLOWS: tuple[Workflow, ...] = (OTJ_LOG_WORKFLOW, EVIDENCE_WORKFLOW)
