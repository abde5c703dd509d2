from __future__ import annotations

from thalexa.domain.entities.auth_session import ZkLoginFlowState
from thalexa.domain.exceptions import FlowStateError, RETRYABLE_FLOW_FAILURES


_NEXT_STATE = {
    ZkLoginFlowState.IDLE: ZkLoginFlowState.KEYS_GENERATED,
    ZkLoginFlowState.KEYS_GENERATED: ZkLoginFlowState.REDIRECT_ISSUED,
    ZkLoginFlowState.REDIRECT_ISSUED: ZkLoginFlowState.JWT_RECEIVED,
    ZkLoginFlowState.JWT_RECEIVED: ZkLoginFlowState.SALT_RESOLVED,
    ZkLoginFlowState.SALT_RESOLVED: ZkLoginFlowState.PROOF_RESOLVED,
    ZkLoginFlowState.PROOF_RESOLVED: ZkLoginFlowState.SESSION_ACTIVE,
}


def advance_flow(current: ZkLoginFlowState, target: ZkLoginFlowState) -> ZkLoginFlowState:
    if target == ZkLoginFlowState.FAILED:
        if current in (ZkLoginFlowState.SESSION_ACTIVE, ZkLoginFlowState.FAILED):
            raise FlowStateError(f"Cannot fail a flow in state '{current.value}'.")
        return target
    if _NEXT_STATE.get(current) != target:
        raise FlowStateError(f"Illegal zkLogin transition {current.value} -> {target.value}.")
    return target


def can_complete(state: ZkLoginFlowState, failure_reason: str | None) -> bool:
    """A pending flow may receive its JWT once the redirect was issued.

    A failed flow may be resumed from the JWT step only when the failure came
    from a collaborator (salt, proof, transport); the keys and randomness are
    still bound to the same nonce.
    """
    if state == ZkLoginFlowState.REDIRECT_ISSUED:
        return True
    return state == ZkLoginFlowState.FAILED and failure_reason in RETRYABLE_FLOW_FAILURES
