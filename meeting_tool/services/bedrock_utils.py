from __future__ import annotations

import json
import logging
import zlib
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from meeting_tool.config import Settings
from meeting_tool.errors import GenerationError
from meeting_tool.services.cache import TTLCache
from meeting_tool.utils.auth_aws import client_config, get_session

logger = logging.getLogger(__name__)

AGENDA_SYSTEM_PROMPT = (
    "You are an expert meeting facilitator. Create a structured meeting agenda "
    "with time estimates based on the provided topics."
)
SUMMARY_SYSTEM_PROMPT = (
    "You are an expert meeting summarizer. Extract key decisions and action items from meeting notes."
)

TOPIC_MINUTES = 15
ADDITIONAL_ITEMS = [
    ("Welcome and Introduction", 5),
    ("Open Discussion", 10),
    ("Action Items and Next Steps", 5),
]

FALLBACK_SUMMARY = "\n".join(
    [
        "# Meeting Summary",
        "",
        "## Key Points:",
        "- Meeting notes processed",
        "- Summary generation failed due to technical issues",
        "",
        "## Action Items:",
        "- Review the original notes manually",
        "- Try summarizing again later",
    ]
)


def _load_json_body(response: dict[str, Any]) -> dict[str, Any]:
    body = response.get("body")
    if hasattr(body, "read"):
        raw = body.read()
    elif isinstance(body, (bytes, bytearray)):
        raw = body
    elif body is None:
        return {}
    else:
        raw = str(body).encode("utf-8")
    try:
        return json.loads(raw.decode("utf-8"))
    except json.JSONDecodeError:
        return {"outputText": raw.decode("utf-8")}


def _model_uses_messages(model_id: str) -> bool:
    lowered = (model_id or "").lower()
    if "claude" not in lowered:
        return False
    return not any(legacy in lowered for legacy in ("claude-v1", "claude-v2", "claude-instant"))


def _extract_text_from_content(content: dict[str, Any]) -> str:
    for key in ("outputText", "completion", "response"):
        value = content.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    results = content.get("results")
    if isinstance(results, list) and results and isinstance(results[0], dict):
        text = results[0].get("outputText")
        if isinstance(text, str) and text.strip():
            return text.strip()
    message_content = content.get("content")
    if isinstance(message_content, list):
        pieces: list[str] = []
        for item in message_content:
            if not isinstance(item, dict):
                continue
            text = item.get("text")
            if isinstance(text, str) and text.strip():
                pieces.append(text.strip())
        if pieces:
            return "\n".join(pieces)
    return ""


def fallback_agenda(topics: str) -> str:
    """Outline built from the topics alone, with fixed time allocations."""
    items = [line.strip() for line in topics.split("\n") if line.strip()]
    lines = ["# Meeting Agenda", "", "## Topics:"]
    lines.extend(f"- {topic} ({TOPIC_MINUTES} minutes)" for topic in items)
    lines.extend(["", "## Additional Items:"])
    lines.extend(f"- {label} ({minutes} minutes)" for label, minutes in ADDITIONAL_ITEMS)
    total = len(items) * TOPIC_MINUTES + sum(minutes for _, minutes in ADDITIONAL_ITEMS)
    lines.extend(["", f"Total Estimated Time: {total} minutes"])
    return "\n".join(lines)


def notes_cache_key(notes: str) -> str:
    return f"summary:{len(notes)}:{zlib.crc32(notes.encode('utf-8')):08x}"


class BedrockGenerator:
    """Agenda and summary generation through a Bedrock text model.

    Upstream failures never reach the caller: a locally built fallback
    document is returned instead, and only the log tells the two apart.
    """

    def __init__(
        self,
        client: Any,
        model_id: str,
        cache: TTLCache,
        max_tokens: int = 1024,
        temperature: float = 0.7,
    ):
        self.client = client
        self.model_id = model_id
        self.cache = cache
        self.max_tokens = max_tokens
        self.temperature = temperature

    @classmethod
    def from_settings(cls, settings: Settings, session: Any | None = None) -> "BedrockGenerator":
        session = session or get_session(settings)
        client = session.client("bedrock-runtime", config=client_config(settings))
        cache = TTLCache(settings.generation_cache_ttl_seconds, settings.generation_cache_max_entries)
        return cls(
            client,
            settings.bedrock_model_id,
            cache,
            max_tokens=settings.bedrock_max_tokens,
            temperature=settings.bedrock_temperature,
        )

    def generate_agenda(self, topics: str) -> str:
        cache_key = f"agenda:{topics}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.info("Using cached agenda")
            return cached

        prompt = f"Create a meeting agenda with time estimates for the following topics: {topics}"
        try:
            agenda = self._complete(AGENDA_SYSTEM_PROMPT, prompt)
        except GenerationError:
            logger.warning("Agenda generation failed, using fallback template", exc_info=True)
            return fallback_agenda(topics)

        logger.info("Agenda generated by model=%s", self.model_id)
        self.cache.set(cache_key, agenda)
        return agenda

    def generate_summary(self, notes: str) -> str:
        cache_key = notes_cache_key(notes)
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.info("Using cached summary")
            return cached

        prompt = f"Summarize the key decisions and action items from these meeting notes: {notes}"
        try:
            summary = self._complete(SUMMARY_SYSTEM_PROMPT, prompt)
        except GenerationError:
            logger.warning("Summary generation failed, using fallback template", exc_info=True)
            return FALLBACK_SUMMARY

        logger.info("Summary generated by model=%s", self.model_id)
        self.cache.set(cache_key, summary)
        return summary

    def _payload(self, system: str, prompt: str) -> dict[str, Any]:
        if _model_uses_messages(self.model_id):
            return {
                "anthropic_version": "bedrock-2023-05-31",
                "max_tokens": self.max_tokens,
                "temperature": self.temperature,
                "system": system,
                "messages": [
                    {
                        "role": "user",
                        "content": [
                            {
                                "type": "text",
                                "text": prompt,
                            }
                        ],
                    }
                ],
            }
        return {
            "prompt": f"{system}\n\n{prompt}",
            "maxTokens": self.max_tokens,
            "temperature": self.temperature,
        }

    def _complete(self, system: str, prompt: str) -> str:
        try:
            response = self.client.invoke_model(
                modelId=self.model_id,
                contentType="application/json",
                accept="application/json",
                body=json.dumps(self._payload(system, prompt)).encode("utf-8"),
            )
        except (BotoCoreError, ClientError) as exc:
            raise GenerationError(f"Bedrock invoke_model failed for {self.model_id}") from exc

        text = _extract_text_from_content(_load_json_body(response))
        if not text:
            raise GenerationError(f"Bedrock returned no text for {self.model_id}")
        return text
