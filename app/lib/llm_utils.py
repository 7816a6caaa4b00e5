# app/lib/llm_utils.py
"""
LLM Utilities

- API key encryption/decryption (Fernet)
- API key format checks and live validation against the provider
- Chat completion calls with token usage

Supports: OpenAI
"""
import os
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import openai
from cryptography.fernet import Fernet, InvalidToken
from flask import current_app, has_app_context

logger = logging.getLogger(__name__)


SUPPORTED_PROVIDERS = ('openai',)
OPENAI_KEY_PREFIX = 'sk-'
MIN_API_KEY_LENGTH = 20
MASKED_KEY = '••••••••'


class ApiKeyError(Exception):
    """Stored key could not be decrypted or is unusable."""


# =============================================================================
# API KEY ENCRYPTION
# =============================================================================

def get_encryption_key() -> bytes:
    """
    Fernet key from app config (ENCRYPTION_KEY), falling back to the
    environment outside an app context.

    Generate one with: flask generate-encryption-key
    """
    key = None
    if has_app_context():
        key = current_app.config.get('ENCRYPTION_KEY')
    key = key or os.environ.get('ENCRYPTION_KEY')
    if not key:
        raise ValueError("ENCRYPTION_KEY not set")
    return key.encode()


def encrypt_api_key(plain_key: str) -> str:
    f = Fernet(get_encryption_key())
    return f.encrypt(plain_key.encode()).decode()


def decrypt_api_key(encrypted_key: str) -> str:
    f = Fernet(get_encryption_key())
    try:
        return f.decrypt(encrypted_key.encode()).decode()
    except InvalidToken as e:
        raise ApiKeyError("Stored API key cannot be decrypted") from e


def mask_api_key(plain_key: Optional[str] = None, last4: Optional[str] = None) -> str:
    """Bullets plus the last four characters when known."""
    tail = last4 if last4 is not None else (plain_key[-4:] if plain_key else '')
    return f"{MASKED_KEY}{tail}"


# =============================================================================
# API KEY VALIDATION
# =============================================================================

def check_api_key_format(provider: str, api_key: str) -> Tuple[bool, str]:
    """Offline shape checks. Returns (ok, error_label)."""
    if provider not in SUPPORTED_PROVIDERS:
        return False, "Unsupported provider"
    if provider == 'openai' and not api_key.startswith(OPENAI_KEY_PREFIX):
        return False, "Invalid OpenAI API key format"
    return True, ""


def validate_api_key(provider: str, api_key: str) -> Tuple[bool, str]:
    """
    Validate an API key with a minimal authenticated request.

    Returns: (is_valid, message)
    """
    if provider != 'openai':
        return False, "Unsupported provider"
    try:
        client = openai.OpenAI(api_key=api_key)
        client.models.list()
        return True, "Valid OpenAI API key"
    except openai.AuthenticationError as e:
        return False, f"Invalid OpenAI API key: {e}"
    except openai.OpenAIError as e:
        logger.warning(f"OpenAI key validation failed: {e}")
        return False, f"Validation error: {e}"


# =============================================================================
# COMPLETIONS
# =============================================================================

@dataclass
class CompletionResult:
    text: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0


def generate_with_openai(api_key: str, messages: List[Dict[str, str]],
                         model: str = "gpt-4o-mini", max_tokens: int = 2000,
                         temperature: float = 0.7) -> CompletionResult:
    """
    Run one chat completion. Raises openai.OpenAIError on provider failure
    and ValueError when the provider returns no content.
    """
    client = openai.OpenAI(api_key=api_key)
    response = client.chat.completions.create(
        model=model,
        messages=messages,
        max_tokens=max_tokens,
        temperature=temperature,
    )

    content = response.choices[0].message.content if response.choices else None
    if not content:
        raise ValueError("No response content from OpenAI")

    usage = getattr(response, 'usage', None)
    return CompletionResult(
        text=content.strip(),
        model=model,
        input_tokens=getattr(usage, 'prompt_tokens', 0) or 0,
        output_tokens=getattr(usage, 'completion_tokens', 0) or 0,
    )
