from __future__ import annotations

from fastapi import HTTPException

from thalexa.domain.exceptions import (
    ConfigurationError,
    DomainError,
    FlowStateError,
    InvalidCallArgumentError,
    InvalidCredentialError,
    NetworkError,
    ObjectNotFoundError,
    PinningError,
    ProofUnavailableError,
    RejectedError,
    SaltUnavailableError,
    SessionExpiredError,
    SessionNotFoundError,
    SigningError,
)


_STATUS_BY_ERROR: tuple[tuple[type[DomainError], int], ...] = (
    (ConfigurationError, 500),
    (InvalidCredentialError, 401),
    (SessionExpiredError, 401),
    (SigningError, 401),
    (SessionNotFoundError, 404),
    (ObjectNotFoundError, 404),
    (InvalidCallArgumentError, 400),
    (FlowStateError, 409),
    (RejectedError, 409),
    (SaltUnavailableError, 502),
    (ProofUnavailableError, 502),
    (PinningError, 502),
    (NetworkError, 503),
)


def to_http_exception(exc: DomainError) -> HTTPException:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            break
    else:
        status_code = 500
    detail: dict = {"code": exc.code, "message": str(exc)}
    if isinstance(exc, RejectedError) and exc.tx_hash:
        detail["tx_hash"] = exc.tx_hash
    return HTTPException(status_code=status_code, detail=detail)
