import logging

import httpx

from live_translate.domain.errors import (
    ConfigurationError,
    UpstreamContractError,
    UpstreamTransportError,
)

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "https://api.elevenlabs.io"
TOKEN_PATH = "/v1/single-use-token/realtime_scribe"


class ElevenLabsTokenClient:
    """Mints single-use realtime tokens so the long-lived key never reaches the socket."""

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_API_BASE_URL,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    async def mint(self) -> str:
        if not self._api_key:
            raise ConfigurationError("Missing ELEVENLABS_API_KEY.")

        url = f"{self._base_url}{TOKEN_PATH}"
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(url, headers={"xi-api-key": self._api_key})
        except httpx.HTTPError as exc:
            logger.error("Token request failed: %s", exc)
            raise UpstreamTransportError(
                "Failed to mint ElevenLabs token.", details=str(exc)
            ) from exc

        if response.status_code >= 400:
            logger.error("Token request rejected: HTTP %d", response.status_code)
            raise UpstreamTransportError(
                "Failed to mint ElevenLabs token.",
                status=response.status_code,
                details=response.text,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamContractError("ElevenLabs response missing token.", raw=response.text) from exc

        token = data.get("token") if isinstance(data, dict) else None
        if not token or not isinstance(token, str):
            raise UpstreamContractError("ElevenLabs response missing token.", raw=response.text)

        logger.debug("Minted realtime token")
        return token
