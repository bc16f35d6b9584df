from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from accredb.errors import InvalidTransition, ValidationFailed

from .registry import WORKFLOWS


def _state_value(state: Any) -> str:
    return getattr(state, "value", state)


def _workflow(entity_type: str) -> Dict[str, Any]:
    workflow = WORKFLOWS.get(entity_type)
    if not workflow:
        raise ValueError(f"No workflow registered for {entity_type}")
    return workflow


def is_legal(from_state: Any, to_state: Any, *, entity_type: str = "accreditation") -> bool:
    transitions = _workflow(entity_type)["transitions"]
    return _state_value(to_state) in transitions.get(_state_value(from_state), {})


def legal_targets(from_state: Any, *, entity_type: str = "accreditation") -> List[str]:
    transitions = _workflow(entity_type)["transitions"]
    return list(transitions.get(_state_value(from_state), {}))


def trigger_for(from_state: Any, to_state: Any, *, entity_type: str = "accreditation") -> Optional[str]:
    triggers = _workflow(entity_type)["triggers"]
    return triggers.get((_state_value(from_state), _state_value(to_state)))


def check_transition(
    db: Optional[Session],
    *,
    entity_type: str,
    from_state: Any,
    to_state: Any,
    before_obj: Any,
    after_obj: Any,
) -> str:
    """
    Validate a transition without touching the record.

    Raises InvalidTransition for pairs missing from the table and
    ValidationFailed when a guard reports missing requirements. Returns
    the trigger name for the edge.
    """
    from_value = _state_value(from_state)
    to_value = _state_value(to_state)

    transitions = _workflow(entity_type)["transitions"]
    guards = transitions.get(from_value, {}).get(to_value)
    if guards is None:
        raise InvalidTransition(from_value, to_value)

    failures: List[Dict[str, str]] = []
    for guard in guards:
        failures.extend(
            guard(
                db,
                before_obj=before_obj,
                after_obj=after_obj,
                from_state=from_value,
                to_state=to_value,
            )
        )

    if failures:
        raise ValidationFailed("Missing requirements for transition", detail=failures)

    return trigger_for(from_value, to_value, entity_type=entity_type) or to_value.lower()


def apply_transition(
    db: Optional[Session],
    record: Any,
    *,
    to_state: Any,
    entity_type: str = "accreditation",
    context: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Move `record.status` to `to_state` if the edge is legal and its guards pass.

    Role-agnostic: callers decide who may request the edge. Nothing is
    written to the record when validation fails. Returns the trigger name.
    """
    workflow = _workflow(entity_type)
    trigger = check_transition(
        db,
        entity_type=entity_type,
        from_state=record.status,
        to_state=to_state,
        before_obj=record,
        after_obj=context or {},
    )
    record.status = workflow["states"](_state_value(to_state))
    return trigger
