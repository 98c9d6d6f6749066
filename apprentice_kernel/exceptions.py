"""
Typed Exception Hierarchy for the Apprentice Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

The kernel never produces transport responses.  Callers (HTTP layers, CLIs,
background jobs) map kernel outcomes to their own status codes.  That mapping
must not depend on message wording, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example - WRONG way to handle errors:
    try:
        otj_service.verify(actor, entry_id)
    except Exception as e:
        if "own" in str(e):  # FRAGILE
            ...

Example - RIGHT way:
    try:
        otj_service.verify(actor, entry_id)
    except InvalidStateError as e:
        # stale snapshot -- refetch, may retry once
        ...
    except ForbiddenTransitionError as e:
        return api_response(403, code=e.code)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ApprenticeKernelError (base)
    |
    +-- UnknownRoleError
    +-- ProfileNotFoundError
    +-- AccessDeniedError
    +-- EntityNotFoundError
    +-- ValidationError
    |
    +-- TransitionError
    |   +-- InvalidStateError
    |   +-- ForbiddenTransitionError
    |   +-- ResourceLockedError
    |
    +-- FeedbackError
    |   +-- EmptyFeedbackError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Code                   | When Raised                               | Typical mapping
-----------------------|-------------------------------------------|----------------
UNKNOWN_ROLE           | Actor role outside the closed role set     | 500 (caller bug)
PROFILE_NOT_FOUND      | Learner has no profile                     | 404
ACCESS_DENIED          | Not owner, not associated, not superuser   | 403
ENTITY_NOT_FOUND       | Resource id does not exist                 | 404
VALIDATION_ERROR       | Malformed input (hours, fields, category)  | 400
INVALID_STATE          | Resource not in the transition source state| 400/409
FORBIDDEN_TRANSITION   | Role/ownership ineligible for transition   | 403
RESOURCE_LOCKED        | Content edit after lock (approval/submit)  | 403
EMPTY_FEEDBACK         | Rejection without a feedback message       | 400
IMMUTABILITY_VIOLATION | Update/delete of an append-only record     | 500

===============================================================================
RETRY POLICY
===============================================================================

No error here is transient.  All are derived from the resource snapshot and
the actor, so the kernel has no backoff.  InvalidStateError is the one kind a
caller may act on: refetch the resource and retry at most once.
"""


class ApprenticeKernelError(Exception):
    """
    Base exception for all apprentice kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "APPRENTICE_KERNEL_ERROR"


class UnknownRoleError(ApprenticeKernelError):
    """Role value is not one of the closed role set."""

    code: str = "UNKNOWN_ROLE"

    def __init__(self, role: object):
        self.role = str(role)
        super().__init__(f"Unknown role: {role!r}")


class ProfileNotFoundError(ApprenticeKernelError):
    """
    Learner has no profile, so associations cannot be resolved.

    Callers treat this as visibility denied, never as a server fault.
    """

    code: str = "PROFILE_NOT_FOUND"

    def __init__(self, learner_id: str):
        self.learner_id = learner_id
        super().__init__(f"Learner profile not found: {learner_id}")


class AccessDeniedError(ApprenticeKernelError):
    """Actor may not see or target the resource."""

    code: str = "ACCESS_DENIED"

    def __init__(
        self,
        actor_id: str,
        resource_kind: str,
        resource_id: str | None,
        reason: str,
        decision_code: str,
    ):
        self.actor_id = actor_id
        self.resource_kind = resource_kind
        self.resource_id = resource_id
        self.reason = reason
        self.decision_code = decision_code
        super().__init__(
            f"Access denied to {resource_kind} {resource_id} "
            f"for actor {actor_id}: {reason}"
        )


class EntityNotFoundError(ApprenticeKernelError):
    """Resource with the given id does not exist."""

    code: str = "ENTITY_NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


class ValidationError(ApprenticeKernelError):
    """Input rejected before any state is touched."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


# Transition-related exceptions


class TransitionError(ApprenticeKernelError):
    """Base exception for workflow transition errors."""

    code: str = "TRANSITION_ERROR"


class InvalidStateError(TransitionError):
    """
    Resource is not in a source state of the requested transition.

    Also raised to the losing caller of a concurrent transition, whose
    compare-and-swap update matched no row.
    """

    code: str = "INVALID_STATE"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        action: str,
        current_state: str,
        expected_states: tuple[str, ...] = (),
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.action = action
        self.current_state = current_state
        self.expected_states = expected_states
        expected = ", ".join(expected_states) if expected_states else "n/a"
        super().__init__(
            f"Cannot {action} {entity_type} {entity_id} in state "
            f"'{current_state}' (expected: {expected})"
        )


class ForbiddenTransitionError(TransitionError):
    """Actor's role or ownership is ineligible for the requested transition."""

    code: str = "FORBIDDEN_TRANSITION"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        action: str,
        actor_id: str,
        reason: str,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.action = action
        self.actor_id = actor_id
        self.reason = reason
        super().__init__(
            f"Actor {actor_id} may not {action} {entity_type} {entity_id}: {reason}"
        )


class ResourceLockedError(TransitionError):
    """Content of the resource can no longer be changed by its owner."""

    code: str = "RESOURCE_LOCKED"

    def __init__(self, entity_type: str, entity_id: str, status: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.status = status
        super().__init__(
            f"{entity_type} {entity_id} is locked in state '{status}'"
        )


# Feedback-related exceptions


class FeedbackError(ApprenticeKernelError):
    """Base exception for feedback protocol errors."""

    code: str = "FEEDBACK_ERROR"


class EmptyFeedbackError(FeedbackError):
    """A rejecting transition was attempted without a feedback message."""

    code: str = "EMPTY_FEEDBACK"

    def __init__(self, related_item_type: str, related_item_id: str):
        self.related_item_type = related_item_type
        self.related_item_id = related_item_id
        super().__init__(
            f"Feedback message is required to reject "
            f"{related_item_type} {related_item_id}"
        )


# Immutability-related exceptions


class ImmutabilityError(ApprenticeKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify {entity_type} {entity_id}: {reason}"
        )
