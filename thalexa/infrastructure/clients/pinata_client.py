from __future__ import annotations

import json
import logging
from dataclasses import dataclass

import httpx

from thalexa.application.dto.product import PinnedContent
from thalexa.application.ports.pinning_port import PinningPort
from thalexa.domain.exceptions import ConfigurationError, NetworkError, PinningError


logger = logging.getLogger(__name__)


ALLOWED_CONTENT_TYPES = frozenset(
    {
        "image/jpeg",
        "image/png",
        "image/gif",
        "image/webp",
        "application/pdf",
        "application/json",
    }
)


@dataclass(frozen=True)
class PinataSettings:
    api_base: str
    gateway: str
    api_key: str
    secret_key: str
    jwt: str
    timeout_seconds: float
    max_upload_bytes: int


class PinataClient(PinningPort):
    def __init__(self, settings: PinataSettings, *, transport: httpx.AsyncBaseTransport | None = None):
        self._settings = settings
        self._transport = transport

    def gateway_url(self, cid: str) -> str:
        return f"{self._settings.gateway.rstrip('/')}/{cid}"

    async def upload_file(
        self,
        *,
        content: bytes,
        filename: str,
        content_type: str,
        name: str | None = None,
        keyvalues: dict | None = None,
    ) -> PinnedContent:
        if len(content) > self._settings.max_upload_bytes:
            raise PinningError(
                f"File exceeds the {self._settings.max_upload_bytes} byte upload limit."
            )
        if content_type not in ALLOWED_CONTENT_TYPES:
            raise PinningError(f"Content type '{content_type}' is not allowed.")

        response = await self._request(
            "POST",
            "/pinning/pinFileToIPFS",
            files={"file": (filename, content, content_type)},
            data={
                "pinataMetadata": json.dumps({"name": name or filename, "keyvalues": keyvalues or {}}),
                "pinataOptions": json.dumps({"cidVersion": 1}),
            },
        )
        pinned = self._map_pin_response(response)
        logger.info("pinata_client: file_pinned cid=%s size=%s", pinned.cid, pinned.size)
        return pinned

    async def upload_json(
        self,
        *,
        payload: dict,
        name: str,
        keyvalues: dict | None = None,
    ) -> PinnedContent:
        response = await self._request(
            "POST",
            "/pinning/pinJSONToIPFS",
            json={
                "pinataContent": payload,
                "pinataMetadata": {"name": name, "keyvalues": keyvalues or {}},
                "pinataOptions": {"cidVersion": 1},
            },
        )
        pinned = self._map_pin_response(response)
        logger.info("pinata_client: json_pinned cid=%s size=%s", pinned.cid, pinned.size)
        return pinned

    async def fetch_json(self, *, cid: str) -> dict:
        response = await self._send("GET", self.gateway_url(cid))
        if response.is_error:
            raise PinningError(f"Gateway returned HTTP {response.status_code} for {cid}.")
        try:
            return response.json()
        except ValueError as exc:
            raise PinningError(f"Content {cid} is not JSON.") from exc

    async def pin_by_hash(self, *, cid: str, name: str | None = None) -> None:
        await self._request(
            "POST",
            "/pinning/pinByHash",
            json={"hashToPin": cid, "pinataMetadata": {"name": name or cid}},
        )

    async def unpin(self, *, cid: str) -> None:
        await self._request("DELETE", f"/pinning/unpin/{cid}")
        logger.info("pinata_client: unpinned cid=%s", cid)

    async def test_authentication(self) -> bool:
        response = await self._send(
            "GET",
            self._url("/data/testAuthentication"),
            headers=self._auth_headers(),
        )
        return response.is_success

    def _url(self, path: str) -> str:
        return f"{self._settings.api_base.rstrip('/')}{path}"

    def _auth_headers(self) -> dict:
        if self._settings.jwt:
            return {"Authorization": f"Bearer {self._settings.jwt}"}
        if self._settings.api_key and self._settings.secret_key:
            return {
                "pinata_api_key": self._settings.api_key,
                "pinata_secret_api_key": self._settings.secret_key,
            }
        raise ConfigurationError("PINATA_JWT or PINATA_API_KEY/PINATA_SECRET_KEY is required.")

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        response = await self._send(method, self._url(path), headers=self._auth_headers(), **kwargs)
        if response.is_error:
            raise PinningError(self._error_message(response))
        return response

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            async with httpx.AsyncClient(timeout=self._settings.timeout_seconds, transport=self._transport) as client:
                return await client.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            raise NetworkError("Pinning service timed out.") from exc
        except httpx.TransportError as exc:
            raise NetworkError(f"Pinning service is unreachable: {exc}") from exc

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("error"):
            error = body["error"]
            if isinstance(error, dict):
                error = error.get("details") or error.get("reason") or error
            return f"Pinning failed: {error}"
        return f"Pinning failed with HTTP {response.status_code}."

    def _map_pin_response(self, response: httpx.Response) -> PinnedContent:
        try:
            body = response.json()
            cid = str(body["IpfsHash"])
        except (ValueError, KeyError, TypeError) as exc:
            raise PinningError("Pinning service returned an unexpected body.") from exc
        return PinnedContent(
            cid=cid,
            size=int(body.get("PinSize") or 0),
            timestamp=str(body.get("Timestamp") or ""),
            gateway_url=self.gateway_url(cid),
        )
