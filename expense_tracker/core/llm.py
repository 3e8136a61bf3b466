"""
LLM-based receipt classification supporting multiple providers (OpenAI, Groq, Anthropic, etc.).
"""

import datetime as dt
import json
import math
import os
import re
from enum import Enum
from typing import Dict, Optional

from .models import CATEGORIES, ClassifiedFields


class LLMProvider(str, Enum):
    """Supported LLM providers."""
    OPENAI = "openai"
    GROQ = "groq"
    AZURE_OPENAI = "azure-openai"
    ANTHROPIC = "anthropic"


# Default models for each provider
DEFAULT_MODELS = {
    LLMProvider.OPENAI.value: "gpt-4o-mini",
    LLMProvider.GROQ.value: "meta-llama/llama-4-scout-17b-16e-instruct",
    LLMProvider.AZURE_OPENAI.value: "gpt-4o-mini",
    LLMProvider.ANTHROPIC.value: "claude-3-5-haiku-20241022",
}

PROVIDERS = [p.value for p in LLMProvider]

GROQ_BASE_URL = "https://api.groq.com/openai/v1"

TEMPERATURE = 0.1
MAX_TOKENS = 300

SYSTEM_PROMPT = f"""You are a receipt analysis assistant.
Extract the following fields from the text and return ONLY JSON:
- merchant (string)
- total (number, no currency symbols)
- date (YYYY-MM-DD)
- category (MUST be one of: {', '.join(CATEGORIES)})

If a field is missing, provide a logical guess or null."""

FAILURE_PAYLOAD = {"error": "Failed to classify"}

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# "12.50", "12", "1,234.56" and "12,50" (comma as decimal point)
_PLAIN_AMOUNT_RE = re.compile(r"^\d+(?:\.\d{1,2})?$")
_GROUPED_AMOUNT_RE = re.compile(r"^\d{1,3}(?:,\d{3})+(?:\.\d{1,2})?$")
_COMMA_DECIMAL_RE = re.compile(r"^\d+,\d{1,2}$")


class ClassificationError(Exception):
    """Raised when the LLM call fails or its response has the wrong shape."""

    def __init__(self, message: str, raw_response: Optional[str] = None):
        super().__init__(message)
        self.raw_response = raw_response


# Lazy import clients
_clients = {}


def _get_openai_client():
    """Get or create async OpenAI client (lazy initialization)."""
    if "openai" not in _clients:
        import openai
        _clients["openai"] = openai.AsyncOpenAI()  # Uses OPENAI_API_KEY env var
    return _clients["openai"]


def _get_groq_client():
    """Get or create async client for Groq's OpenAI-compatible endpoint."""
    if "groq" not in _clients:
        import openai
        _clients["groq"] = openai.AsyncOpenAI(
            api_key=os.getenv("GROQ_API_KEY"),
            base_url=os.getenv("GROQ_BASE_URL", GROQ_BASE_URL),
        )
    return _clients["groq"]


def _get_azure_openai_client():
    """Get or create async Azure OpenAI client (lazy initialization)."""
    if "azure" not in _clients:
        import openai
        _clients["azure"] = openai.AsyncAzureOpenAI(
            api_key=os.getenv("AZURE_OPENAI_API_KEY"),
            api_version=os.getenv("AZURE_OPENAI_API_VERSION", "2024-02-15-preview"),
            azure_endpoint=os.getenv("AZURE_OPENAI_ENDPOINT")
        )
    return _clients["azure"]


def _get_anthropic_client():
    """Get or create async Anthropic client (lazy initialization)."""
    if "anthropic" not in _clients:
        import anthropic
        _clients["anthropic"] = anthropic.AsyncAnthropic()  # Uses ANTHROPIC_API_KEY env var
    return _clients["anthropic"]


async def _call_chat_completions(client, user_content: str, model: str) -> str:
    """Call an OpenAI-compatible chat completions API in JSON mode."""
    response = await client.chat.completions.create(
        model=model,
        messages=[
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": user_content},
        ],
        max_tokens=MAX_TOKENS,
        temperature=TEMPERATURE,
        response_format={"type": "json_object"}
    )
    if not response.choices:
        return ""
    return (response.choices[0].message.content or "").strip()


async def _call_anthropic(user_content: str, model: str) -> str:
    """Call Anthropic API."""
    client = _get_anthropic_client()
    response = await client.messages.create(
        model=model,
        max_tokens=MAX_TOKENS,
        temperature=TEMPERATURE,
        system=SYSTEM_PROMPT,
        messages=[{"role": "user", "content": user_content}]
    )
    if not response.content:
        return ""
    return response.content[0].text.strip()


async def request_classification(raw_text: str, provider: str = "openai",
                                 model: Optional[str] = None) -> str:
    """Send one classification request and return the raw response text."""
    if model is None:
        model = DEFAULT_MODELS.get(provider, DEFAULT_MODELS[LLMProvider.OPENAI.value])

    user_content = f"Receipt Text: {raw_text}"

    if provider == LLMProvider.OPENAI:
        return await _call_chat_completions(_get_openai_client(), user_content, model)
    elif provider == LLMProvider.GROQ:
        return await _call_chat_completions(_get_groq_client(), user_content, model)
    elif provider == LLMProvider.AZURE_OPENAI:
        return await _call_chat_completions(_get_azure_openai_client(), user_content, model)
    elif provider == LLMProvider.ANTHROPIC:
        return await _call_anthropic(user_content, model)
    raise ValueError(f"Unsupported LLM provider: {provider}")


def _strip_code_fence(response_text: str) -> str:
    """Extract JSON from a markdown code block, if the model wrapped it in one."""
    if not response_text.startswith("```"):
        return response_text
    json_lines = []
    in_code = False
    for line in response_text.split("\n"):
        if line.startswith("```"):
            in_code = not in_code
            continue
        if in_code:
            json_lines.append(line)
    return "\n".join(json_lines)


def _clean_merchant(value) -> Optional[str]:
    if not isinstance(value, str):
        return None
    return value.strip() or None


def _clean_total(value) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().lstrip("$€£").strip()
        if _COMMA_DECIMAL_RE.match(value):
            value = value.replace(",", ".")
        elif _GROUPED_AMOUNT_RE.match(value):
            value = value.replace(",", "")
        elif not _PLAIN_AMOUNT_RE.match(value):
            return None
    try:
        total = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(total) or total < 0:
        return None
    return round(total, 2)


def _clean_date(value) -> Optional[str]:
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not _ISO_DATE_RE.match(value):
        return None
    try:
        return dt.date.fromisoformat(value).isoformat()
    except ValueError:
        return None


def _clean_category(value) -> Optional[str]:
    if not isinstance(value, str):
        return None
    category_lower = value.strip().lower()
    matched = [c for c in CATEGORIES if c.lower() == category_lower]
    return matched[0] if matched else None


def parse_classification(response_text: str) -> ClassifiedFields:
    """
    Validate a model response against the fixed field shape.

    Empty content is a successful-but-empty classification. Non-JSON, a JSON
    value that is not an object, or an error payload raise ClassificationError.
    Individual fields with the wrong shape degrade to None.
    """
    response_text = _strip_code_fence((response_text or "").strip())
    if not response_text:
        return ClassifiedFields()

    try:
        result = json.loads(response_text)
    except json.JSONDecodeError as e:
        raise ClassificationError(f"Response is not JSON: {e}", raw_response=response_text) from e

    if not isinstance(result, dict):
        raise ClassificationError("Response is not a JSON object", raw_response=response_text)
    if "error" in result:
        raise ClassificationError(f"Service error: {result['error']}", raw_response=response_text)

    return ClassifiedFields(
        merchant=_clean_merchant(result.get("merchant")),
        total=_clean_total(result.get("total")),
        date=_clean_date(result.get("date")),
        category=_clean_category(result.get("category")),
    )


async def classify_receipt(raw_text: str, provider: str = "openai",
                           model: Optional[str] = None) -> Optional[ClassifiedFields]:
    """
    Classify receipt text with the LLM.

    Args:
        raw_text: Full OCR text from receipt
        provider: LLM provider to use ("openai", "groq", "azure-openai", "anthropic")
        model: Model name (uses default for provider if not specified)

    Returns:
        ClassifiedFields, or None when no structured classification is available.
        Failures are not retried here.
    """
    if provider not in PROVIDERS:
        raise ValueError(f"Unsupported LLM provider: {provider}")

    try:
        response_text = await request_classification(raw_text, provider=provider, model=model)
        return parse_classification(response_text)
    except ClassificationError as e:
        print(f"[WARN] LLM classification failed: {e}")
        return None
    except Exception as e:
        print(f"[WARN] LLM classification failed: {type(e).__name__}: {e}")
        return None


def classification_payload(classified: Optional[ClassifiedFields]) -> Dict:
    """Render a classification outcome in the service's JSON wire shape."""
    if classified is None:
        return dict(FAILURE_PAYLOAD)
    return classified.to_dict()
