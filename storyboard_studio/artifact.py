from __future__ import annotations

from typing import List, Literal, Optional
from pydantic import BaseModel, Field, ConfigDict


# ---------- Base (forbid unknown keys) ----------

class StrictModel(BaseModel):
    """Base model that rejects unknown fields to keep outputs clean."""
    model_config = ConfigDict(extra="forbid")


FrameStatus = Literal["pending", "generating", "done", "error"]
AudioStatus = Literal["idle", "generating", "done", "error"]


# ---------- World entities ----------

class Character(StrictModel):
    """A character owned by the surrounding application."""
    id: str = Field(..., description="Stable identifier for this character.")
    name: str = Field(..., description="Character name as used in the script (e.g., '林晓').")
    description: str = Field("", description="Short description: role in the story, personality.")
    visual_prompt: str = Field("", description="Visual DNA: hairstyle, hair and eye color, clothing materials and style, accessories, body type, age feel. Reused verbatim in every generation.")
    image_url: Optional[str] = Field(None, description="Data URI of the generated character model sheet.")
    default_voice: Optional[str] = Field(None, description="Prebuilt voice name used for this character's dialogue.")


class Scene(StrictModel):
    """A location owned by the surrounding application."""
    id: str = Field(..., description="Stable identifier for this scene.")
    name: str = Field(..., description="Location name (e.g., '废弃工厂').")
    description: str = Field("", description="Short description of the location.")
    visual_prompt: str = Field("", description="Visual DNA: lighting, atmosphere, key props, architectural style.")
    image_url: Optional[str] = Field(None, description="Data URI of the wide-angle panorama.")
    grid_url: Optional[str] = Field(None, description="Data URI of the nine-panel detail grid.")


# ---------- Script analysis drafts ----------

class CharacterDraft(StrictModel):
    """A character as extracted from the script, before the application owns it."""
    name: Optional[str] = Field(None, description="Character name.")
    description: Optional[str] = Field(None, description="Brief description.")
    visual_prompt: Optional[str] = Field(None, description="Extremely detailed visual description.")


class SceneDraft(StrictModel):
    """A scene as extracted from the script, before the application owns it."""
    name: Optional[str] = Field(None, description="Location name.")
    description: Optional[str] = Field(None, description="Brief description.")
    visual_prompt: Optional[str] = Field(None, description="Extremely detailed visual description.")


class WorldInfo(StrictModel):
    """Characters and scenes found in a script."""
    characters: List[CharacterDraft] = Field(default_factory=list)
    scenes: List[SceneDraft] = Field(default_factory=list)


# ---------- Panels and frames ----------

class ScriptPanel(StrictModel):
    """One shot produced by script analysis."""
    panel_number: int = Field(0, description="Sequence position assigned by script analysis. Never renumbered.")
    description: str = Field(..., description="Visual action: framing, lighting, composition and character acting.")
    characters_present: List[str] = Field(default_factory=list, description="Names of the characters in the shot, in order.")
    dialogue: Optional[str] = Field(None, description="Original dialogue text spoken in this shot.")
    camera_angle: Optional[str] = Field(None, description="Shot type label (e.g., '特写 (Close-up)', '广角 (Wide)').")


class StoryboardFrame(ScriptPanel):
    """A panel bound to generation state."""
    id: str = Field(..., description="Stable identifier for this frame.")
    generated_image_url: Optional[str] = Field(None, description="Data URI of the generated panel image.")
    current_prompt: str = Field("", description="Prompt compiled from the current bindings, or the one last used for generation.")
    status: FrameStatus = Field("pending", description="Image generation status.")
    assigned_scene_id: Optional[str] = Field(None, description="Scene bound to this frame, if any.")
    audio_url: Optional[str] = Field(None, description="Playable URL of the generated dialogue audio.")
    audio_status: AudioStatus = Field("idle", description="Dialogue audio generation status.")


class Storyboard(StrictModel):
    """Everything derived from one script."""
    characters: List[Character] = Field(default_factory=list)
    scenes: List[Scene] = Field(default_factory=list)
    frames: List[StoryboardFrame] = Field(default_factory=list)
