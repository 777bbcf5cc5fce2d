"""Google Cloud Text-to-Speech over REST.

Uses httpx against ``v1/text:synthesize`` with an API key; the response
carries base64 ``audioContent`` on success or ``error.message`` on failure.
"""

import base64
import logging
from typing import Any

import httpx

from ...errors import SynthesisError
from ..base import RemoteSynthesizer

logger = logging.getLogger(__name__)

SYNTHESIZE_URL = "https://texttospeech.googleapis.com/v1/text:synthesize"


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or "TTS API request failed"
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return error["message"]
    return "TTS API request failed"


class GoogleCloudSynthesizer(RemoteSynthesizer):
    """Remote synthesizer backed by Google Cloud Text-to-Speech.

    Hidden design decisions:
    - Endpoint, auth by API key query parameter
    - Voice and encoding selection
    - Error payload to SynthesisError mapping
    """

    def __init__(
        self,
        api_key: str,
        language_code: str = "fr-FR",
        voice_name: str = "fr-FR-Wavenet-E",
        audio_encoding: str = "MP3",
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self._api_key = api_key
        self._language_code = language_code
        self._voice_name = voice_name
        self._audio_encoding = audio_encoding
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    def _payload(self, text: str, rate: float) -> dict[str, Any]:
        return {
            "input": {"text": text},
            "voice": {"languageCode": self._language_code, "name": self._voice_name},
            "audioConfig": {"audioEncoding": self._audio_encoding, "speakingRate": rate},
        }

    async def synthesize(self, text: str, rate: float = 1.0) -> bytes:
        """Synthesize text and return the encoded audio bytes."""
        try:
            response = await self._client.post(
                SYNTHESIZE_URL,
                params={"key": self._api_key},
                json=self._payload(text, rate),
            )
        except httpx.HTTPError as exc:
            raise SynthesisError(f"Network error contacting TTS service: {exc}") from exc

        if response.is_error:
            message = _error_message(response)
            raise SynthesisError(f"[{response.status_code}] {message}", status_code=response.status_code)

        data = response.json()
        audio_content = data.get("audioContent")
        if not audio_content:
            raise SynthesisError("TTS response contained no audio")
        logger.debug("Synthesized %d chars remotely", len(text))
        return base64.b64decode(audio_content)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
