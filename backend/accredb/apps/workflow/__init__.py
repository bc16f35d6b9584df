from .engine import apply_transition, check_transition, is_legal, legal_targets, trigger_for
from .registry import WORKFLOWS

__all__ = [
    "WORKFLOWS",
    "apply_transition",
    "check_transition",
    "is_legal",
    "legal_targets",
    "trigger_for",
]
