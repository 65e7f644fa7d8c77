import json

import httpx

from storefront.services.errors import EndpointUnavailable


class AssistantClient:
    """Posts shopper queries to the external assistant endpoints.

    ``text_url`` receives JSON queries, ``voice_url`` receives recorded audio
    as multipart. Both answer ``{"success": bool, "response": str, "error": str}``.
    """

    def __init__(self, text_url: str, voice_url: str, timeout: float = 30.0,
                 transport: httpx.AsyncBaseTransport | None = None):
        self.text_url = text_url
        self.voice_url = voice_url
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    # -- Low-level helpers --

    def _parse(self, url: str, response: httpx.Response) -> str:
        if response.is_error:
            raise EndpointUnavailable(url, f"HTTP {response.status_code}")
        try:
            data = response.json()
        except ValueError as e:
            raise EndpointUnavailable(url, "invalid JSON body") from e
        if not isinstance(data, dict):
            raise EndpointUnavailable(url, "invalid response body")
        if not data.get("success"):
            raise EndpointUnavailable(url, str(data.get("error") or "unknown assistant error"))
        answer = data.get("response") or ""
        if not isinstance(answer, str):
            raise EndpointUnavailable(url, "invalid response body")
        return answer

    # -- Query methods --

    async def query(self, payload: dict) -> str:
        """Send a text query with its product/conversation context. Returns the answer."""
        try:
            response = await self._client.post(self.text_url, json=payload)
        except httpx.HTTPError as e:
            raise EndpointUnavailable(self.text_url, str(e) or type(e).__name__) from e
        return self._parse(self.text_url, response)

    async def query_audio(self, audio: bytes, payload: dict) -> str:
        """Send recorded audio; context fields travel as form fields, non-strings JSON encoded."""
        try:
            response = await self._client.post(
                self.voice_url,
                files={"audio": ("query.webm", audio, "audio/webm")},
                data={k: v if isinstance(v, str) else json.dumps(v) for k, v in payload.items()},
            )
        except httpx.HTTPError as e:
            raise EndpointUnavailable(self.voice_url, str(e) or type(e).__name__) from e
        return self._parse(self.voice_url, response)

    async def close(self):
        """Close the underlying HTTP client."""
        await self._client.aclose()
