"""
Apprentice Kernel - record governance core

Authorization and review-workflow engine for apprenticeship training records:
- Closed role model with superuser / elevated predicates
- Learner association resolution (tutor, IQA, training provider)
- Resource-kind agnostic access decisions
- OTJ log two-tier verification and evidence review state machines
- Rejection feedback recorded atomically with the status change
"""

__version__ = "0.1.0"
