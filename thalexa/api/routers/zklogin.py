from __future__ import annotations

from fastapi import APIRouter, Cookie, Depends, Header, HTTPException, Response

from thalexa.api.deps import (
    SESSION_COOKIE,
    get_begin_zklogin_use_case,
    get_complete_zklogin_use_case,
    get_epoch_query_service,
    get_get_zklogin_session_use_case,
    get_logout_zklogin_use_case,
    get_session_id,
)
from thalexa.api.errors import to_http_exception
from thalexa.api.schemas.zklogin import (
    BeginZkLoginRequest,
    BeginZkLoginResponse,
    CompleteZkLoginRequest,
    LogoutResponse,
    ZkLoginSessionResponse,
)
from thalexa.application.dto.zklogin import BeginZkLoginInput, CompleteZkLoginInput, ZkLoginSessionOutput
from thalexa.application.use_cases.begin_zklogin import BeginZkLoginUseCase
from thalexa.application.use_cases.chain_queries import ChainQueryService
from thalexa.application.use_cases.complete_zklogin import CompleteZkLoginUseCase
from thalexa.application.use_cases.get_zklogin_session import GetZkLoginSessionUseCase
from thalexa.application.use_cases.logout_zklogin import LogoutZkLoginUseCase
from thalexa.domain.exceptions import DomainError
from thalexa.shared.config import get_settings


router = APIRouter()


def _set_session_cookie(response: Response, session_id: str) -> None:
    response.set_cookie(
        key=SESSION_COOKIE,
        value=session_id,
        httponly=True,
        samesite="lax",
        secure=False,
        path="/v1",
    )


def _session_response(output: ZkLoginSessionOutput) -> ZkLoginSessionResponse:
    return ZkLoginSessionResponse(
        session_id=output.session_id,
        provider=output.provider,
        flow_state=output.flow_state.value,
        max_epoch=output.max_epoch,
        user_address=output.user_address,
        failure_reason=output.failure_reason,
        expires_at=output.expires_at,
        email=output.email,
        is_valid=output.is_valid,
    )


@router.post("/v1/zklogin/begin", response_model=BeginZkLoginResponse)
async def begin_zklogin(
    req: BeginZkLoginRequest,
    response: Response,
    use_case: BeginZkLoginUseCase = Depends(get_begin_zklogin_use_case),
    chain_queries: ChainQueryService = Depends(get_epoch_query_service),
):
    try:
        max_epoch = req.max_epoch
        if max_epoch is None:
            current_epoch = await chain_queries.get_current_epoch()
            max_epoch = current_epoch + get_settings().zklogin_max_epoch_offset
        output = use_case.execute(BeginZkLoginInput(provider=req.provider, max_epoch=max_epoch))
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    _set_session_cookie(response, output.session_id)
    return BeginZkLoginResponse(
        session_id=output.session_id,
        provider=output.provider,
        authorization_url=output.authorization_url,
        nonce=output.nonce,
        max_epoch=output.max_epoch,
        flow_state=output.flow_state.value,
    )


@router.post("/v1/zklogin/complete", response_model=ZkLoginSessionResponse)
async def complete_zklogin(
    req: CompleteZkLoginRequest,
    response: Response,
    x_zklogin_session: str | None = Header(default=None),
    zklogin_session: str | None = Cookie(default=None),
    use_case: CompleteZkLoginUseCase = Depends(get_complete_zklogin_use_case),
):
    session_id = (req.session_id or x_zklogin_session or zklogin_session or "").strip()
    if not session_id:
        raise HTTPException(status_code=400, detail="session_id is required.")
    try:
        output = await use_case.execute(
            CompleteZkLoginInput(session_id=session_id, jwt=req.jwt, state=req.state)
        )
    except DomainError as exc:
        raise to_http_exception(exc) from exc

    _set_session_cookie(response, session_id)
    return _session_response(output)


@router.get("/v1/zklogin/session", response_model=ZkLoginSessionResponse)
def get_zklogin_session(
    session_id: str = Depends(get_session_id),
    use_case: GetZkLoginSessionUseCase = Depends(get_get_zklogin_session_use_case),
):
    try:
        output = use_case.execute(session_id=session_id)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return _session_response(output)


@router.post("/v1/zklogin/logout", response_model=LogoutResponse)
def logout_zklogin(
    response: Response,
    session_id: str = Depends(get_session_id),
    use_case: LogoutZkLoginUseCase = Depends(get_logout_zklogin_use_case),
):
    use_case.execute(session_id=session_id)
    response.delete_cookie(key=SESSION_COOKIE, path="/v1")
    return LogoutResponse(ok=True)
