from __future__ import annotations

from pydantic import BaseModel, Field

from thalexa.domain.entities.auth_session import OAuthProvider


class BeginZkLoginRequest(BaseModel):
    provider: OAuthProvider
    max_epoch: int | None = Field(default=None, ge=0)


class BeginZkLoginResponse(BaseModel):
    session_id: str
    provider: OAuthProvider
    authorization_url: str
    nonce: str
    max_epoch: int
    flow_state: str


class CompleteZkLoginRequest(BaseModel):
    jwt: str = Field(..., min_length=1)
    state: str | None = None
    session_id: str | None = None


class ZkLoginSessionResponse(BaseModel):
    session_id: str
    provider: OAuthProvider
    flow_state: str
    max_epoch: int
    user_address: str | None
    failure_reason: str | None
    expires_at: int | None
    email: str | None
    is_valid: bool


class LogoutResponse(BaseModel):
    ok: bool
