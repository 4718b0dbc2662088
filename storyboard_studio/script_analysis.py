"""
Script Analysis

Two-phase extraction from a raw fiction script:
1. World info: main characters and distinct scenes, with visual DNA
2. Panels: the script broken into cinematic shots

Both phases use JSON mode on the text model and force Simplified Chinese output.
"""

from __future__ import annotations

import json
import math
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, Field, ConfigDict

import gemini_wrapper

from .artifact import CharacterDraft, SceneDraft, ScriptPanel, WorldInfo
from .errors import ParseError
from .resilience import invoke


MISSING_DESCRIPTION_SENTINEL = "No description generated."
ESTABLISHING_SHOT_DESCRIPTION = "Cinematic establishing shot, detailed environment, 8k resolution."
DEFAULT_CAMERA_ANGLE = "Medium Shot"
DIALOGUE_PREVIEW_CHARS = 15


# ---------- Output DTOs (response schemas) ----------

class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class EntityOutput(_WireModel):
    name: str = Field(..., description="Name in Simplified Chinese.")
    description: str = Field(..., description="Brief description in Simplified Chinese.")
    visual_prompt: str = Field(..., alias="visualPrompt", description="Extremely detailed visual description in Simplified Chinese.")


class WorldInfoOutput(_WireModel):
    characters: List[EntityOutput] = Field(..., description="Main characters of the script.")
    scenes: List[EntityOutput] = Field(..., description="Distinct scenes/locations of the script.")


class PanelOutput(_WireModel):
    panel_id: int = Field(..., description="Panel sequence number.")
    visual_action: str = Field(..., description="REQUIRED. Detailed visual instruction.")
    characters_in_shot: List[str] = Field(..., description="Names from the available character list.")
    dialogue_text: str = Field(..., description="Original dialogue text.")
    shot_type: str = Field(..., description="Shot type, e.g. '特写 (Close-up)'.")


# ---------- Embedded Prompts ----------

WORLD_INFO_PROMPT = """
Analyze the following fiction script.
Identify all the MAIN characters and DISTINCT scenes/locations.

**OUTPUT LANGUAGE REQUIREMENT: SIMPLIFIED CHINESE (简体中文)**.

For each Character:
- name: Character Name (Chinese).
- description: Brief description (Chinese).
- visualPrompt: **Extremely detailed visual description in Chinese**.
  - Include: Hairstyle, hair color, eye shape/color, clothing details (materials, style), accessories, body type, age feel.
  - Example: "银色长发，锐利的蓝色眼睛，穿着带有发光纹路的黑色赛博朋克战术夹克，冷酷表情，脖子上有条形码纹身".

For each Scene:
- name: Location Name (Chinese).
- description: Brief description (Chinese).
- visualPrompt: **Extremely detailed visual description in Chinese**.
  - Include: Lighting (neon, natural, dark), atmosphere, key props, architectural style.
  - Example: "破旧的废弃工厂内部，生锈的金属管道，昏暗的黄色应急灯光，地面有积水，充满压抑感".

Script:
{script}
"""

PANELS_PROMPT = """
Role: Professional Cinematic Storyboard Director.
Task: Convert the script into a sequence of highly detailed visual panels.

**CRITICAL**: You MUST provide a 'visual_action' for every single panel.
It must be rich in visual detail, describing lighting, composition, and specific character acting.

Instead of "He looks angry", say: "Close-up, high contrast lighting, Character A's face contorted in rage, veins visible, dark background."
Instead of "They talk", say: "Over-the-shoulder shot, Character A in focus foreground, Character B blurred in background, warm sunset lighting."

**OUTPUT LANGUAGE REQUIREMENT: SIMPLIFIED CHINESE (简体中文)**.

Available Characters: {character_names}.

Output JSON Array with these exact keys:
- panel_id (integer)
- visual_action (String. **REQUIRED**. Detailed Visual Instruction.)
- characters_in_shot (Array of Strings. Names from available list.)
- dialogue_text (String. Original text.)
- shot_type (String. E.g., "特写 (Close-up)", "中景 (Medium)", "广角 (Wide)", "荷兰角 (Dutch Angle)")

Script:
{script}
"""


# ---------- Helpers ----------

def _as_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _parse_json(text: str, what: str) -> Any:
    if not text:
        raise ParseError(f"Failed to analyze {what}: empty response")
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        print(f"❌ JSON parse error: {e}")
        raise ParseError("Invalid JSON response from AI") from e


async def _generate_json(prompt: str, schema: Dict[str, Any], api_key: Optional[str]) -> str:
    config = {
        "responseMimeType": "application/json",
        "responseJsonSchema": schema,
    }
    response = await invoke(lambda: gemini_wrapper.generate_content_async(
        model=gemini_wrapper.TEXT_MODEL,
        contents=gemini_wrapper.build_text_contents(prompt),
        generation_config=config,
        api_key=api_key,
        _caller="script_analysis",
    ))
    return gemini_wrapper.extract_text(response)


def _entity_draft(raw: Dict[str, Any], draft_cls):
    return draft_cls(
        name=_as_str(raw.get("name")),
        description=_as_str(raw.get("description")),
        visual_prompt=_as_str(raw.get("visualPrompt")),
    )


def _entity_drafts(raw_list: Any, draft_cls) -> list:
    """Drafts for the dict entries of a list; anything else in the response is ignored."""
    if not isinstance(raw_list, list):
        return []
    return [_entity_draft(raw, draft_cls) for raw in raw_list if isinstance(raw, dict)]


def recover_panel_description(description: Any, dialogue: str, characters: Sequence[str]) -> str:
    """Return a usable visual action, synthesizing one when the model left it out."""
    desc = description if isinstance(description, str) else ""
    if desc.strip() and desc != MISSING_DESCRIPTION_SENTINEL:
        return desc

    if dialogue:
        speakers = "&".join(characters) or "Character"
        return f'{speakers} saying: "{dialogue[:DIALOGUE_PREVIEW_CHARS]}...". Cinematic lighting, detailed expression.'
    return ESTABLISHING_SHOT_DESCRIPTION


def panel_from_raw(raw: Any) -> ScriptPanel:
    """Normalize one loosely-shaped panel object from the model."""
    if not isinstance(raw, dict):
        raw = {}

    dialogue = _as_str(raw.get("dialogue_text")) or ""
    characters = raw.get("characters_in_shot")
    characters = [str(c) for c in characters] if isinstance(characters, list) else []
    panel_id = raw.get("panel_id")
    if isinstance(panel_id, bool) or not isinstance(panel_id, (int, float)) or not math.isfinite(panel_id):
        panel_id = 0

    return ScriptPanel(
        panel_number=int(panel_id),
        description=recover_panel_description(raw.get("visual_action"), dialogue, characters),
        characters_present=characters,
        dialogue=dialogue,
        camera_angle=_as_str(raw.get("shot_type")) or DEFAULT_CAMERA_ANGLE,
    )


# ---------- Public API ----------

async def extract_world_info(script: str, api_key: Optional[str] = None) -> WorldInfo:
    """Extract main characters and distinct scenes from a script.

    Raises:
        ParseError: If the response is empty or not valid JSON
    """
    text = await _generate_json(
        WORLD_INFO_PROMPT.format(script=script),
        gemini_wrapper.build_response_schema(WorldInfoOutput),
        api_key,
    )
    result = _parse_json(text, "script entities")
    if not isinstance(result, dict):
        result = {}

    return WorldInfo(
        characters=_entity_drafts(result.get("characters"), CharacterDraft),
        scenes=_entity_drafts(result.get("scenes"), SceneDraft),
    )


async def analyze_script(script: str, known_character_names: Sequence[str], api_key: Optional[str] = None) -> List[ScriptPanel]:
    """Break a script into ordered storyboard panels.

    Args:
        script: Full script text
        known_character_names: Names from extract_world_info(), offered to the model
        api_key: Optional credential override

    Returns:
        Panels in response order, with missing visual actions recovered

    Raises:
        ParseError: If the response is empty or not valid JSON
    """
    text = await _generate_json(
        PANELS_PROMPT.format(character_names=", ".join(n for n in known_character_names if n), script=script),
        gemini_wrapper.build_response_schema(PanelOutput, as_array=True),
        api_key,
    )
    result = _parse_json(text, "script")
    if not isinstance(result, list):
        return []
    return [panel_from_raw(p) for p in result]
