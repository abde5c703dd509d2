from __future__ import annotations

from dataclasses import replace
from typing import Literal

from thalexa.domain.entities.escrow import (
    TERMINAL_ESCROW_STATES,
    EscrowContract,
    EscrowState,
    TrackingUpdate,
)


EscrowAction = Literal["accept", "update_tracking", "complete", "dispute", "cancel"]

DELIVERED_STATUSES = frozenset({"delivered"})

_ALLOWED_FROM: dict[str, frozenset[EscrowState]] = {
    "accept": frozenset({EscrowState.PENDING}),
    "update_tracking": frozenset({EscrowState.ACCEPTED, EscrowState.IN_TRANSIT}),
    "complete": frozenset({EscrowState.DELIVERED}),
    "dispute": frozenset(
        {
            EscrowState.PENDING,
            EscrowState.ACCEPTED,
            EscrowState.IN_TRANSIT,
            EscrowState.DELIVERED,
        }
    ),
    "cancel": frozenset({EscrowState.PENDING, EscrowState.ACCEPTED}),
}

LEGAL_EDGES: frozenset[tuple[EscrowState, EscrowState]] = frozenset(
    {
        (EscrowState.PENDING, EscrowState.ACCEPTED),
        (EscrowState.ACCEPTED, EscrowState.IN_TRANSIT),
        (EscrowState.ACCEPTED, EscrowState.DELIVERED),
        (EscrowState.IN_TRANSIT, EscrowState.IN_TRANSIT),
        (EscrowState.IN_TRANSIT, EscrowState.DELIVERED),
        (EscrowState.DELIVERED, EscrowState.COMPLETED),
        (EscrowState.PENDING, EscrowState.CANCELLED),
        (EscrowState.ACCEPTED, EscrowState.CANCELLED),
        (EscrowState.PENDING, EscrowState.DISPUTED),
        (EscrowState.ACCEPTED, EscrowState.DISPUTED),
        (EscrowState.IN_TRANSIT, EscrowState.DISPUTED),
        (EscrowState.DELIVERED, EscrowState.DISPUTED),
    }
)


class IllegalEscrowTransition(ValueError):
    def __init__(self, action: str, state: EscrowState):
        super().__init__(f"Cannot {action.replace('_', ' ')} an escrow in state {state.label}.")
        self.action = action
        self.state = state


def is_legal_transition(source: EscrowState, target: EscrowState) -> bool:
    return (source, target) in LEGAL_EDGES


def is_terminal(state: EscrowState) -> bool:
    return state in TERMINAL_ESCROW_STATES


def ensure_action_allowed(escrow: EscrowContract, action: EscrowAction) -> None:
    if escrow.state not in _ALLOWED_FROM[action]:
        raise IllegalEscrowTransition(action, escrow.state)


def tracking_target_state(current: EscrowState, status: str) -> EscrowState:
    if status.strip().lower() in DELIVERED_STATUSES:
        return EscrowState.DELIVERED
    if current == EscrowState.ACCEPTED:
        return EscrowState.IN_TRANSIT
    return current


def accept(escrow: EscrowContract, *, now_ms: int) -> EscrowContract:
    ensure_action_allowed(escrow, "accept")
    return replace(escrow, state=EscrowState.ACCEPTED, accepted_at=now_ms)


def append_tracking(
    escrow: EscrowContract,
    *,
    location: str,
    status: str,
    updated_by: str,
    now_ms: int,
) -> EscrowContract:
    ensure_action_allowed(escrow, "update_tracking")
    update = TrackingUpdate(timestamp=now_ms, location=location, status=status, updated_by=updated_by)
    return replace(
        escrow,
        state=tracking_target_state(escrow.state, status),
        tracking_updates=escrow.tracking_updates + (update,),
    )


def complete(escrow: EscrowContract, *, now_ms: int) -> EscrowContract:
    ensure_action_allowed(escrow, "complete")
    return replace(escrow, state=EscrowState.COMPLETED, completed_at=now_ms)


def dispute(escrow: EscrowContract) -> EscrowContract:
    ensure_action_allowed(escrow, "dispute")
    return replace(escrow, state=EscrowState.DISPUTED)


def cancel(escrow: EscrowContract) -> EscrowContract:
    ensure_action_allowed(escrow, "cancel")
    return replace(escrow, state=EscrowState.CANCELLED)
