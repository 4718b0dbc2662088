"""
Tiered image generation.

Tier 1 asks the multimodal image model; when it refuses (answers with text),
returns nothing, or fails, Tier 2 asks the dedicated Imagen model.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import gemini_wrapper

from .errors import GenerationExhausted
from .resilience import invoke


ASPECT_RATIOS = ("1:1", "16:9", "9:16", "3:4", "4:3")
IMAGE_RETRIES = 2
REFUSAL_PREVIEW_CHARS = 100


# ---------- Tier-1 response variants ----------

@dataclass(frozen=True)
class ImagePayload:
    data: str
    mime_type: str = "image/png"


@dataclass(frozen=True)
class TextRefusal:
    text: str


@dataclass(frozen=True)
class Empty:
    pass


SoftRefusal = TextRefusal
ImageResponse = Union[ImagePayload, TextRefusal, Empty]


def decode_image_response(full_response: Dict[str, Any]) -> ImageResponse:
    """Classify a generateContent response as image, text refusal or empty.

    An inline image anywhere in the parts wins over text.
    """
    parts = gemini_wrapper.extract_parts(full_response)

    for part in parts:
        inline = part.get("inlineData") if isinstance(part, dict) else None
        if isinstance(inline, dict) and inline.get("data"):
            return ImagePayload(data=inline["data"], mime_type=inline.get("mimeType") or "image/png")

    for part in parts:
        text = part.get("text") if isinstance(part, dict) else None
        if text:
            return TextRefusal(text=text)

    return Empty()


def _first_imagen_bytes(full_response: Dict[str, Any]) -> Optional[str]:
    predictions = full_response.get("predictions") or []
    if predictions and isinstance(predictions[0], dict):
        return predictions[0].get("bytesBase64Encoded")
    return None


# ---------- Public API ----------

async def generate_image(prompt: str, aspect_ratio: str = "1:1", api_key: Optional[str] = None) -> str:
    """Generate one image and return it as a data URI.

    Args:
        prompt: Image prompt
        aspect_ratio: One of ASPECT_RATIOS
        api_key: Optional credential override

    Returns:
        "data:image/png;base64,..." from Tier 1 or "data:image/jpeg;base64,..." from Tier 2

    Raises:
        ValueError: If aspect_ratio is not supported
        GenerationExhausted: If both tiers fail
    """
    if aspect_ratio not in ASPECT_RATIOS:
        raise ValueError(f"Unsupported aspect ratio {aspect_ratio!r}; expected one of {', '.join(ASPECT_RATIOS)}")
    # Fail fast on a missing key instead of letting both tiers swallow it
    api_key = gemini_wrapper.resolve_api_key(api_key)

    diagnostic: Optional[str] = None
    tier1_error: Optional[BaseException] = None
    tier2_error: Optional[BaseException] = None

    # Tier 1: multimodal image model
    try:
        response = await invoke(lambda: gemini_wrapper.generate_content_async(
            model=gemini_wrapper.IMAGE_MODEL,
            contents=gemini_wrapper.build_text_contents(prompt),
            generation_config={"imageConfig": {"aspectRatio": aspect_ratio}},
            api_key=api_key,
            _caller="generate_image",
        ), max_retries=IMAGE_RETRIES)

        result = decode_image_response(response)
        if isinstance(result, ImagePayload):
            return f"data:image/png;base64,{result.data}"
        if isinstance(result, TextRefusal):
            diagnostic = f"AI Refusal: {result.text[:REFUSAL_PREVIEW_CHARS]}..."
        else:
            diagnostic = "API returned empty data."
        print(f"⚠️ {gemini_wrapper.IMAGE_MODEL}: {diagnostic} Trying fallback...")

    except Exception as e:
        print(f"⚠️ {gemini_wrapper.IMAGE_MODEL} failed, trying fallback... ({str(e)[:100]})")
        tier1_error = e
        diagnostic = str(e) or type(e).__name__

    # Tier 2: dedicated image model
    try:
        response = await invoke(lambda: gemini_wrapper.predict_images_async(
            model=gemini_wrapper.FALLBACK_IMAGE_MODEL,
            prompt=prompt,
            number_of_images=1,
            aspect_ratio=aspect_ratio,
            output_mime_type="image/jpeg",
            api_key=api_key,
        ), max_retries=IMAGE_RETRIES)

        image_b64 = _first_imagen_bytes(response)
        if image_b64:
            return f"data:image/jpeg;base64,{image_b64}"
        print(f"⚠️ {gemini_wrapper.FALLBACK_IMAGE_MODEL} returned no image")

    except Exception as e:
        print(f"⚠️ {gemini_wrapper.FALLBACK_IMAGE_MODEL} fallback failed: {str(e)[:100]}")
        tier2_error = e

    if diagnostic is None:
        diagnostic = str(tier2_error) if tier2_error is not None else "Image generation failed. Please check your API Key."

    raise GenerationExhausted(diagnostic, tier1_error=tier1_error, tier2_error=tier2_error)
