from __future__ import annotations

import jwt as pyjwt

from thalexa.application.ports.jwt_port import JwtDecoderPort
from thalexa.domain.entities.auth_session import JwtClaims
from thalexa.domain.exceptions import InvalidCredentialError


def _optional_str(payload: dict, key: str) -> str | None:
    value = payload.get(key)
    return value if isinstance(value, str) else None


class PyJwtClaimsDecoder(JwtDecoderPort):
    """Reads OIDC claims without verifying the provider signature.

    The salt and proof services verify the JWT against the provider keys; here
    the claims only bind the token to the local flow.
    """

    def decode_claims(self, *, jwt: str) -> JwtClaims:
        try:
            payload = pyjwt.decode(jwt, options={"verify_signature": False})
        except pyjwt.PyJWTError as exc:
            raise InvalidCredentialError("JWT could not be decoded.") from exc

        subject = payload.get("sub")
        audience = payload.get("aud")
        issuer = payload.get("iss")
        expires_at = payload.get("exp")
        if isinstance(audience, list):
            audience = audience[0] if audience else None
        if not subject or not audience or not issuer or expires_at is None:
            raise InvalidCredentialError("JWT is missing sub, aud, iss or exp.")
        try:
            expires_at = int(expires_at)
        except (TypeError, ValueError) as exc:
            raise InvalidCredentialError("JWT exp claim is not a timestamp.") from exc

        return JwtClaims(
            subject=str(subject),
            audience=str(audience),
            issuer=str(issuer),
            expires_at=expires_at,
            nonce=_optional_str(payload, "nonce"),
            email=_optional_str(payload, "email"),
            name=_optional_str(payload, "name"),
            picture=_optional_str(payload, "picture"),
        )
