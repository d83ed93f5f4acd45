"""OpenAI chat-completions client for the text analysis stages.

Responsibilities:
- Send strict-JSON chat-completions requests to OpenAI's REST API.
- Extract and decode the assistant JSON object from the response.
- Raise actionable provider exceptions for pipeline-level error mapping.
"""

from __future__ import annotations

import json
from typing import Any

from ..errors import ProviderError
from ..http_client import ProviderHTTPClient


class OpenAIProviderError(ProviderError):
    """Raised when an OpenAI request fails or returns malformed output."""

    provider_name = "openai"


class OpenAIChatClient(ProviderHTTPClient):
    """Minimal requests-based OpenAI chat-completions HTTP client."""

    provider_label = "OpenAI"
    api_key_hint = "Set `OPENAI_API_KEY` in the environment, `.env`, or the config file."
    error_type = OpenAIProviderError

    def __init__(
        self,
        *,
        api_key: str | None,
        base_url: str = "https://api.openai.com/v1",
        timeout_seconds: float = 120.0,
    ) -> None:
        super().__init__(api_key=api_key, base_url=base_url, timeout_seconds=timeout_seconds)

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    def chat_completion_json(
        self,
        *,
        model: str,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.0,
    ) -> dict[str, Any]:
        """Return the assistant response decoded as a JSON object."""

        self._require_api_key()

        payload = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "response_format": {"type": "json_object"},
            "temperature": temperature,
        }
        raw_payload = self._post_json_bytes(
            endpoint_path="/chat/completions",
            payload=payload,
        ).decode("utf-8")
        return self._decode_json_object(self._extract_message_text(raw_payload))

    @staticmethod
    def _extract_message_text(raw_payload: str) -> str:
        """Extract first assistant message text from a chat-completions JSON payload."""

        try:
            payload = json.loads(raw_payload)
        except json.JSONDecodeError as exc:
            raise OpenAIProviderError(
                "OpenAI returned invalid JSON payload.", failure_kind="malformed"
            ) from exc

        choices = payload.get("choices") if isinstance(payload, dict) else None
        if not isinstance(choices, list) or not choices:
            raise OpenAIProviderError(
                "OpenAI response missing non-empty `choices` list.", failure_kind="malformed"
            )

        first_choice = choices[0]
        message = first_choice.get("message") if isinstance(first_choice, dict) else None
        if not isinstance(message, dict):
            raise OpenAIProviderError(
                "OpenAI response missing `choices[0].message` object.", failure_kind="malformed"
            )

        text = OpenAIChatClient._message_content_to_text(message.get("content")).strip()
        if not text:
            raise OpenAIProviderError(
                "OpenAI response message content is empty.", failure_kind="malformed"
            )
        return text

    @staticmethod
    def _message_content_to_text(content: Any) -> str:
        """Convert OpenAI message content variants into a plain text string."""

        if isinstance(content, str):
            return content
        if isinstance(content, list):
            parts: list[str] = []
            for item in content:
                if not isinstance(item, dict):
                    continue
                if item.get("type") == "text" and isinstance(item.get("text"), str):
                    parts.append(item["text"])
            return "".join(parts)
        return ""

    @staticmethod
    def _decode_json_object(text: str) -> dict[str, Any]:
        """Decode assistant content that must be a single JSON object."""

        try:
            decoded = json.loads(text)
        except json.JSONDecodeError as exc:
            raise OpenAIProviderError(
                "OpenAI response content is not valid JSON.", failure_kind="malformed"
            ) from exc
        if not isinstance(decoded, dict):
            raise OpenAIProviderError(
                "OpenAI response content must be a JSON object.", failure_kind="malformed"
            )
        return decoded
