"""
Provider variants for the chat relay.

Each provider carries its own request builder and reply extractor; the relay
only looks providers up here and never branches on their identifiers.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

TEMPERATURE = 0.7
MAX_TOKENS = 4000

ANTHROPIC_VERSION = "2023-06-01"

# Values shipped in .env.example; treated as missing credentials.
PLACEHOLDER_KEYS = {
    "openai": "your_openai_api_key_here",
    "anthropic": "your_anthropic_api_key_here",
    "gemini": "your_gemini_api_key_here",
}


class MissingReplyContent(ValueError):
    """The vendor answered 2xx but the reply has no text where we expect it."""


@dataclass(frozen=True)
class ModelInfo:
    id: str
    name: str
    description: str


@dataclass(frozen=True)
class OutboundRequest:
    url: str
    headers: Dict[str, str]
    body: Dict[str, Any]
    params: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ProviderVariant:
    id: str
    name: str
    label: str
    models: List[ModelInfo]
    build_request: Callable[[str, List[Dict[str, str]], str], OutboundRequest]
    extract_reply: Callable[[Dict[str, Any]], "tuple[str, Optional[dict]]"]

    def get_model(self, model_id: str) -> Optional[ModelInfo]:
        return next((m for m in self.models if m.id == model_id), None)


def _plain_messages(messages: List[Dict[str, str]]) -> List[Dict[str, str]]:
    return [{"role": m["role"], "content": m["content"]} for m in messages]


# ---- OpenAI ----

def _openai_request(model: str, messages: List[Dict[str, str]], api_key: str) -> OutboundRequest:
    return OutboundRequest(
        url="https://api.openai.com/v1/chat/completions",
        headers={
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        },
        body={
            "model": model,
            "messages": _plain_messages(messages),
            "temperature": TEMPERATURE,
            "max_tokens": MAX_TOKENS,
            "stream": False,
        },
    )


def _openai_reply(data: Dict[str, Any]) -> "tuple[str, Optional[dict]]":
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        raise MissingReplyContent("choices[0].message.content")
    if not isinstance(content, str) or not content.strip():
        raise MissingReplyContent("choices[0].message.content")
    return content, data.get("usage")


# ---- Anthropic ----

def _anthropic_request(model: str, messages: List[Dict[str, str]], api_key: str) -> OutboundRequest:
    return OutboundRequest(
        url="https://api.anthropic.com/v1/messages",
        headers={
            "x-api-key": api_key,
            "Content-Type": "application/json",
            "anthropic-version": ANTHROPIC_VERSION,
        },
        body={
            "model": model,
            "max_tokens": MAX_TOKENS,
            "messages": _plain_messages(messages),
            "temperature": TEMPERATURE,
        },
    )


def _anthropic_reply(data: Dict[str, Any]) -> "tuple[str, Optional[dict]]":
    try:
        content = data["content"][0]["text"]
    except (KeyError, IndexError, TypeError):
        raise MissingReplyContent("content[0].text")
    if not isinstance(content, str) or not content.strip():
        raise MissingReplyContent("content[0].text")
    return content, data.get("usage")


# ---- Gemini ----

def _gemini_request(model: str, messages: List[Dict[str, str]], api_key: str) -> OutboundRequest:
    # Gemini calls the assistant side "model"
    contents = [
        {
            "role": "model" if m["role"] == "assistant" else "user",
            "parts": [{"text": m["content"]}],
        }
        for m in messages
    ]
    return OutboundRequest(
        url=f"https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent",
        headers={"Content-Type": "application/json"},
        params={"key": api_key},
        body={
            "contents": contents,
            "generationConfig": {
                "temperature": TEMPERATURE,
                "maxOutputTokens": MAX_TOKENS,
            },
        },
    )


def _gemini_reply(data: Dict[str, Any]) -> "tuple[str, Optional[dict]]":
    try:
        content = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        content = None
    if not isinstance(content, str) or not content.strip():
        raise MissingReplyContent("candidates[0].content.parts[0].text")
    return content, data.get("usageMetadata")


PROVIDERS: Dict[str, ProviderVariant] = {
    "openai": ProviderVariant(
        id="openai",
        name="OpenAI GPT",
        label="OpenAI",
        models=[
            ModelInfo("gpt-4", "GPT-4", "Most capable model, best for complex tasks"),
            ModelInfo("gpt-4-turbo", "GPT-4 Turbo", "Faster and more cost-effective than GPT-4"),
            ModelInfo("gpt-3.5-turbo", "GPT-3.5 Turbo", "Fast and efficient for most tasks"),
        ],
        build_request=_openai_request,
        extract_reply=_openai_reply,
    ),
    "anthropic": ProviderVariant(
        id="anthropic",
        name="Anthropic Claude",
        label="Anthropic",
        models=[
            ModelInfo("claude-3-5-sonnet-20241022", "Claude 3.5 Sonnet", "Most intelligent model, best for complex reasoning"),
            ModelInfo("claude-3-haiku-20240307", "Claude 3 Haiku", "Fastest model, great for quick responses"),
        ],
        build_request=_anthropic_request,
        extract_reply=_anthropic_reply,
    ),
    "gemini": ProviderVariant(
        id="gemini",
        name="Google Gemini",
        label="Gemini",
        models=[
            ModelInfo("gemini-1.5-pro-latest", "Gemini 1.5 Pro", "Most capable model with large context window"),
            ModelInfo("gemini-1.5-flash-latest", "Gemini 1.5 Flash", "Fast and efficient for most tasks"),
        ],
        build_request=_gemini_request,
        extract_reply=_gemini_reply,
    ),
}


def get_provider(provider_id: str) -> Optional[ProviderVariant]:
    return PROVIDERS.get(provider_id)


def get_model(provider_id: str, model_id: str) -> Optional[ModelInfo]:
    provider = get_provider(provider_id)
    return provider.get_model(model_id) if provider else None


def is_configured(provider_id: str, api_keys: Dict[str, str]) -> bool:
    """True when a usable (non-placeholder) credential is present for the provider."""
    key = (api_keys.get(provider_id) or "").strip()
    return bool(key) and key != PLACEHOLDER_KEYS.get(provider_id)
