from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests
from django.conf import settings

from .providers import MissingReplyContent, get_provider, is_configured

logger = logging.getLogger(__name__)


class RelayError(RuntimeError):
    status_code = 500


class UnsupportedProvider(RelayError):
    status_code = 400

    def __init__(self, provider: Any):
        self.provider = provider
        super().__init__(f"Unsupported provider: {provider}")


class ProviderNotConfigured(RelayError):
    status_code = 500


class VendorError(RelayError):
    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class VendorUnavailable(RelayError):
    status_code = 502


class EmptyReply(RelayError):
    status_code = 500


@dataclass(frozen=True)
class ChatReply:
    content: str
    usage: Optional[Dict[str, Any]] = None

    def as_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"content": self.content}
        if self.usage is not None:
            data["usage"] = self.usage
        return data


def _vendor_error_message(response: requests.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return "Unknown error"
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return "Unknown error"


def send_message(provider: str, model: str, messages: List[Dict[str, str]]) -> ChatReply:
    """
    Forward one chat turn to the vendor behind `provider` and normalize the reply.
    - messages: ordered list of {"role": "user"|"assistant", "content": "..."}
    Raises a RelayError subclass; its status_code is what the HTTP layer should return.
    """
    variant = get_provider(provider)
    if variant is None:
        raise UnsupportedProvider(provider)

    api_key = getattr(settings, "LLM_API_KEYS", {}).get(variant.id, "")
    if not is_configured(variant.id, {variant.id: api_key}):
        raise ProviderNotConfigured(f"{variant.label} API key not configured")

    outbound = variant.build_request(model, messages, api_key)
    try:
        response = requests.post(
            outbound.url,
            headers=outbound.headers,
            params=outbound.params or None,
            json=outbound.body,
        )
    except requests.RequestException as e:
        logger.error("%s request failed: %s", variant.label, e.__class__.__name__)
        raise VendorUnavailable(f"{variant.label} API request failed: {e.__class__.__name__}") from e

    if not response.ok:
        message = f"{variant.label} API error: {_vendor_error_message(response)}"
        logger.warning("%s (status %s, model %s)", message, response.status_code, model)
        raise VendorError(message, response.status_code)

    try:
        data = response.json()
    except ValueError as e:
        raise EmptyReply(f"No content returned from {variant.label} API") from e

    try:
        content, usage = variant.extract_reply(data)
    except MissingReplyContent as e:
        logger.warning("%s reply missing %s", variant.label, e)
        raise EmptyReply(f"No content returned from {variant.label} API") from e
    return ChatReply(content=content, usage=usage)
