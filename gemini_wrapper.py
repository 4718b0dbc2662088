import json
import os
import aiohttp
from datetime import datetime
from typing import Optional, List, Type, Dict, Any
from pydantic import BaseModel
from dotenv import load_dotenv

from storyboard_studio.errors import CredentialMissing, ProviderError, TransientProviderError

load_dotenv()

GEMINI_BASE_URL = os.getenv("GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta").rstrip("/")

TEXT_MODEL = os.getenv("GEMINI_TEXT_MODEL", "gemini-2.5-flash")
IMAGE_MODEL = os.getenv("GEMINI_IMAGE_MODEL", "gemini-2.5-flash-image")
FALLBACK_IMAGE_MODEL = os.getenv("GEMINI_FALLBACK_IMAGE_MODEL", "imagen-3.0-generate-001")
TTS_MODEL = os.getenv("GEMINI_TTS_MODEL", "gemini-2.5-flash-preview-tts")

TRANSIENT_STATUSES = {500, 502, 503, 504}

# No total timeout: a call lives as long as the upstream keeps it open.
_NO_TIMEOUT = aiohttp.ClientTimeout(total=None)


def _log_llm_call(start_time: datetime, end_time: datetime, tokens_in: int, tokens_out: int, function_name: str, prompt_preview: str):
    """Log provider call information to the call log file"""
    duration = (end_time - start_time).total_seconds()
    log_line = f"{start_time.strftime('%Y-%m-%d %H:%M:%S')} | {function_name} | Duration: {duration:.2f}s | Tokens In: {tokens_in} | Tokens Out: {tokens_out} | Prompt: {prompt_preview}\n"

    with open(os.getenv("LLM_LOG_PATH", "llm_log.txt"), "a", encoding="utf-8") as f:
        f.write(log_line)


def _count_tokens_in_contents(contents: List[Dict[str, Any]]) -> int:
    """Rough token count estimation for request contents"""
    total_chars = 0
    for content in contents:
        for part in content.get("parts", []):
            if isinstance(part, dict) and isinstance(part.get("text"), str):
                total_chars += len(part["text"])
    # Rough estimation: ~4 characters per token
    return total_chars // 4


def _prompt_preview(text: str) -> str:
    return text[:20] + "..." if len(text) > 20 else text


def resolve_api_key(api_key: Optional[str] = None) -> str:
    """Resolve the Gemini credential.

    Order: caller-supplied override, then GEMINI_API_KEY, then API_KEY.

    Raises:
        CredentialMissing: If no credential is configured
    """
    key = (api_key or "").strip() or os.getenv("GEMINI_API_KEY", "").strip() or os.getenv("API_KEY", "").strip()
    if not key:
        raise CredentialMissing("API Key is missing. Set GEMINI_API_KEY or pass api_key explicitly.")
    return key


def build_text_contents(text: str) -> List[Dict[str, Any]]:
    """Build a single-turn user contents list for generateContent."""
    return [{"role": "user", "parts": [{"text": text}]}]


def _strip_titles(schema: Any) -> Any:
    if isinstance(schema, dict):
        return {k: _strip_titles(v) for k, v in schema.items() if k != "title"}
    if isinstance(schema, list):
        return [_strip_titles(item) for item in schema]
    return schema


def build_response_schema(response_format: Type[BaseModel], as_array: bool = False) -> Dict[str, Any]:
    """Build a JSON schema for structured output from a Pydantic model.

    Args:
        response_format: Pydantic model class describing one response object
        as_array: If True, the response is a JSON array of that object

    Returns:
        JSON schema dict ready for generationConfig.responseJsonSchema
    """
    schema = _strip_titles(response_format.model_json_schema())
    if not as_array:
        return schema

    defs = schema.pop("$defs", None)
    array_schema: Dict[str, Any] = {"type": "array", "items": schema}
    if defs:
        array_schema["$defs"] = defs
    return array_schema


def extract_parts(full_response: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Return the content parts of the first candidate, or [] when absent."""
    try:
        parts = full_response["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        return []
    return parts if isinstance(parts, list) else []


def extract_text(full_response: Dict[str, Any]) -> str:
    """Join the text parts of the first candidate ("" when there are none)."""
    return "".join(
        part["text"] for part in extract_parts(full_response)
        if isinstance(part, dict) and isinstance(part.get("text"), str)
    )


def _raise_for_error(status: int, body_text: str) -> Dict[str, Any]:
    """Decode a response body, raising ProviderError for HTTP or JSON failures.

    Returns:
        Parsed JSON response dict
    """
    try:
        body = json.loads(body_text) if body_text else {}
    except json.JSONDecodeError:
        error_cls = TransientProviderError if status in TRANSIENT_STATUSES else ProviderError
        raise error_cls(
            f"Non-JSON response from API (HTTP {status}): {body_text[:200]}",
            status=status,
        )

    if status < 400:
        return body

    error = body.get("error") if isinstance(body, dict) else None
    if not isinstance(error, dict):
        error = {"code": status, "message": body_text[:200]}
    error_cls = TransientProviderError if status in TRANSIENT_STATUSES else ProviderError
    raise error_cls(
        f"HTTP {status}: {error.get('message', '')}".strip(),
        status=status,
        error=error,
    )


async def _post_json(url: str, api_key: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    async with aiohttp.ClientSession(timeout=_NO_TIMEOUT) as session:
        async with session.post(
            url,
            headers={
                "x-goog-api-key": api_key,
                "Content-Type": "application/json",
            },
            data=json.dumps(payload),
        ) as response:
            body_text = await response.text()
            return _raise_for_error(response.status, body_text)


async def generate_content_async(
    model: str,
    contents: List[Dict[str, Any]],
    generation_config: Optional[Dict[str, Any]] = None,
    api_key: Optional[str] = None,
    logging: bool = True,
    _caller: str = "generate_content",
) -> Dict[str, Any]:
    """
    Async Gemini generateContent call

    Args:
        model: The model to use (e.g., "gemini-2.5-flash" or "gemini-2.5-flash-image")
        contents: Request contents, see build_text_contents()
        generation_config: Optional generationConfig (JSON mode, image or speech config)
        api_key: Optional credential override
        logging: If True (default), log call details to the call log

    Returns:
        Full response dict

    Raises:
        CredentialMissing: Before any network call, if no key is configured
        ProviderError: On a non-2xx or non-JSON response
    """
    key = resolve_api_key(api_key)
    start_time = datetime.now() if logging else None

    payload: Dict[str, Any] = {"contents": contents}
    if generation_config:
        payload["generationConfig"] = generation_config

    full_response = await _post_json(f"{GEMINI_BASE_URL}/models/{model}:generateContent", key, payload)

    if logging and start_time:
        end_time = datetime.now()
        usage = full_response.get("usageMetadata", {})
        tokens_in = usage.get("promptTokenCount") or _count_tokens_in_contents(contents)
        tokens_out = usage.get("candidatesTokenCount", 0)
        first_text = contents[0]["parts"][0].get("text", "") if contents and contents[0].get("parts") else ""
        _log_llm_call(start_time, end_time, tokens_in, tokens_out, f"{_caller}:{model}", _prompt_preview(first_text))

    return full_response


async def predict_images_async(
    model: str,
    prompt: str,
    number_of_images: int = 1,
    aspect_ratio: str = "1:1",
    output_mime_type: str = "image/jpeg",
    api_key: Optional[str] = None,
    logging: bool = True,
) -> Dict[str, Any]:
    """
    Async Imagen predict call

    Returns:
        Full response dict, images under predictions[i].bytesBase64Encoded
    """
    key = resolve_api_key(api_key)
    start_time = datetime.now() if logging else None

    payload = {
        "instances": [{"prompt": prompt}],
        "parameters": {
            "sampleCount": number_of_images,
            "aspectRatio": aspect_ratio,
            "outputOptions": {"mimeType": output_mime_type},
        },
    }

    full_response = await _post_json(f"{GEMINI_BASE_URL}/models/{model}:predict", key, payload)

    if logging and start_time:
        _log_llm_call(start_time, datetime.now(), len(prompt) // 4, 0, f"predict_images:{model}", _prompt_preview(prompt))

    return full_response
