import logging

import httpx
from openai import APIConnectionError, APIStatusError, AsyncOpenAI

from live_translate.domain.errors import UpstreamContractError, UpstreamTransportError

logger = logging.getLogger(__name__)


class OpenAIChatCompletion:
    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
            http_client=http_client,
        )

    async def complete_json(
        self,
        model: str,
        temperature: float,
        messages: list[dict[str, str]],
    ) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=model,
                temperature=temperature,
                response_format={"type": "json_object"},
                messages=messages,
            )
        except APIStatusError as exc:
            logger.warning("Chat completion rejected: HTTP %d", exc.status_code)
            raise UpstreamTransportError(
                "Translation request failed.",
                status=exc.status_code,
                details=exc.response.text,
            ) from exc
        except APIConnectionError as exc:
            logger.warning("Chat completion unreachable: %s", exc)
            raise UpstreamTransportError("Translation request failed.", details=str(exc)) from exc

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise UpstreamContractError("Model response missing content.")
        return content
