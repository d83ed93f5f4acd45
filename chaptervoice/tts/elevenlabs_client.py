"""ElevenLabs text-to-speech HTTP client.

Responsibilities:
- Send text-to-speech requests with per-call voice settings.
- Return raw MPEG audio bytes for the caller to persist.
"""

from __future__ import annotations

from ..errors import ProviderError
from ..http_client import ProviderHTTPClient
from ..models.datatypes import VoiceSettings


class ElevenLabsProviderError(ProviderError):
    """Raised when an ElevenLabs request fails or returns an empty payload."""

    provider_name = "elevenlabs"


class ElevenLabsSpeechClient(ProviderHTTPClient):
    """Minimal requests-based ElevenLabs text-to-speech client."""

    provider_label = "ElevenLabs"
    api_key_hint = "Set `ELEVENLABS_API_KEY` in the environment, `.env`, or the config file."
    error_type = ElevenLabsProviderError

    def __init__(
        self,
        *,
        api_key: str | None,
        base_url: str = "https://api.elevenlabs.io/v1",
        timeout_seconds: float = 120.0,
    ) -> None:
        super().__init__(api_key=api_key, base_url=base_url, timeout_seconds=timeout_seconds)

    def _auth_headers(self) -> dict[str, str]:
        return {"xi-api-key": self.api_key}

    def synthesize_speech(
        self,
        *,
        voice_id: str,
        text: str,
        model_id: str,
        voice_settings: VoiceSettings,
    ) -> bytes:
        """Return synthesized MPEG audio bytes for one text."""

        self._require_api_key()

        payload = {
            "text": text,
            "model_id": model_id,
            "voice_settings": voice_settings.as_payload(),
        }
        return self._post_json_bytes(
            endpoint_path=f"/text-to-speech/{voice_id}",
            payload=payload,
            accept="audio/mpeg",
            require_non_empty_response=True,
            empty_response_message="ElevenLabs speech response is empty.",
        )
