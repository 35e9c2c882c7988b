from __future__ import annotations

import logging
import os
from typing import List, Tuple

from .services.providers import PROVIDERS

logger = logging.getLogger(__name__)

ENV_KEYS = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "gemini": "GEMINI_API_KEY",
}


def validate_environment(environ=None) -> Tuple[bool, List[str]]:
    """Check provider credentials and flag keys that would leak to the browser."""
    environ = os.environ if environ is None else environ
    errors: List[str] = []
    for provider_id in PROVIDERS:
        name = ENV_KEYS[provider_id]
        if not environ.get(name):
            errors.append(f"{name} is not configured")
    for name in ENV_KEYS.values():
        public = f"NEXT_PUBLIC_{name}"
        if environ.get(public):
            errors.append(f"{public} should be removed for security - use {name} instead")
    return not errors, errors


def log_environment_status(environ=None) -> bool:
    is_valid, errors = validate_environment(environ)
    if is_valid:
        logger.info("Environment validation passed - all API keys configured")
    else:
        logger.error("Environment validation failed:")
        for error in errors:
            logger.error("  - %s", error)
    return is_valid
