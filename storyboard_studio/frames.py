"""
Frame Adapters - turning analysis output into owned, bound storyboard state

This module handles:
- Converting extracted drafts into Character/Scene records
- Promoting panels into StoryboardFrames with an auto-bound scene
- Rebinding frames (scene, characters) with prompt recomputation
- Image and audio status transitions
- Voice selection for dialogue

Nothing here mutates its inputs; every operation returns new models.
"""

from __future__ import annotations

import uuid
from typing import Dict, Iterable, List, Optional, Sequence

from .artifact import (
    Character,
    CharacterDraft,
    Scene,
    SceneDraft,
    ScriptPanel,
    StoryboardFrame,
)
from .errors import InvalidTransition
from .prompts import find_scene, frame_prompt, construct_panel_prompt
from .speech import DEFAULT_VOICE


# ---------- Status machines ----------

FRAME_TRANSITIONS: Dict[str, set] = {
    "pending": {"generating"},
    "generating": {"done", "error"},
    "done": {"generating"},
    "error": {"generating"},
}

AUDIO_TRANSITIONS: Dict[str, set] = {
    "idle": {"generating"},
    "generating": {"done", "error"},
    "done": {"generating"},
    "error": {"generating"},
}


def _check_transition(table: Dict[str, set], current: str, new: str, field: str) -> None:
    if new not in table.get(current, set()):
        raise InvalidTransition(f"{field}: cannot go from '{current}' to '{new}'")


def transition_status(frame: StoryboardFrame, new_status: str, **updates) -> StoryboardFrame:
    """Move the image status forward, applying extra field updates."""
    _check_transition(FRAME_TRANSITIONS, frame.status, new_status, "status")
    return frame.model_copy(update={**updates, "status": new_status})


def transition_audio_status(frame: StoryboardFrame, new_status: str, **updates) -> StoryboardFrame:
    """Move the audio status forward, applying extra field updates."""
    _check_transition(AUDIO_TRANSITIONS, frame.audio_status, new_status, "audio_status")
    return frame.model_copy(update={**updates, "audio_status": new_status})


# ---------- Drafts to owned records ----------

def _new_id() -> str:
    return str(uuid.uuid4())


def characters_from_drafts(drafts: Iterable[CharacterDraft]) -> List[Character]:
    return [
        Character(
            id=_new_id(),
            name=d.name or "Unknown",
            description=d.description or "",
            visual_prompt=d.visual_prompt or "",
        )
        for d in drafts
    ]


def scenes_from_drafts(drafts: Iterable[SceneDraft]) -> List[Scene]:
    return [
        Scene(
            id=_new_id(),
            name=d.name or "Unknown",
            description=d.description or "",
            visual_prompt=d.visual_prompt or "",
        )
        for d in drafts
    ]


# ---------- Panels to frames ----------

def match_scene_for_panel(panel: ScriptPanel, scenes: Sequence[Scene]) -> Optional[Scene]:
    """Loose name match: the scene name appears in the panel description, or vice versa."""
    description = panel.description or ""
    if not description:
        return None
    for scene in scenes:
        if scene.name and (scene.name in description or description in scene.name):
            return scene
    return None


def frames_from_panels(panels: Iterable[ScriptPanel], characters: Sequence[Character], scenes: Sequence[Scene]) -> List[StoryboardFrame]:
    """Promote panels to frames with a precomputed prompt for preview.

    Args:
        panels: Output of analyze_script()
        characters: Roster used for prompt character resolution
        scenes: Candidates for automatic scene binding

    Returns:
        New frames in panel order, status pending, audio idle
    """
    frames = []
    for panel in panels:
        scene = match_scene_for_panel(panel, scenes)
        frames.append(StoryboardFrame(
            **panel.model_dump(),
            id=_new_id(),
            current_prompt=construct_panel_prompt(panel, characters, scene),
            status="pending",
            assigned_scene_id=scene.id if scene else None,
        ))
    return frames


# ---------- Rebinding ----------

def update_frame(frame: StoryboardFrame, characters: Sequence[Character], scenes: Sequence[Scene], **updates) -> StoryboardFrame:
    """Apply updates to a frame and recompute its prompt from the new bindings."""
    if "panel_number" in updates and updates["panel_number"] != frame.panel_number:
        raise ValueError("panel_number is assigned by script analysis and cannot change")
    updated = frame.model_copy(update=updates)
    return updated.model_copy(update={"current_prompt": frame_prompt(updated, characters, scenes)})


def assign_scene(frame: StoryboardFrame, scene_id: Optional[str], characters: Sequence[Character], scenes: Sequence[Scene]) -> StoryboardFrame:
    if scene_id and find_scene(scene_id, scenes) is None:
        raise ValueError(f"Unknown scene id: {scene_id}")
    return update_frame(frame, characters, scenes, assigned_scene_id=scene_id or None)


def toggle_character(frame: StoryboardFrame, name: str, characters: Sequence[Character], scenes: Sequence[Scene]) -> StoryboardFrame:
    """Add the character to the shot, or remove it if already present."""
    current = list(frame.characters_present or [])
    if name in current:
        present = [c for c in current if c != name]
    else:
        present = current + [name]
    return update_frame(frame, characters, scenes, characters_present=present)


def set_manual_prompt(frame: StoryboardFrame, prompt: str) -> StoryboardFrame:
    """Override the displayed prompt. The next generation recompiles from bindings."""
    return frame.model_copy(update={"current_prompt": prompt})


# ---------- Voices ----------

def voice_for_frame(frame: ScriptPanel, characters: Sequence[Character], voice_map: Optional[Dict[str, str]] = None) -> str:
    """Pick the voice of the frame's first character.

    Order: voice_map[character.id], then the character's default_voice, then Kore.
    """
    speaker = (frame.characters_present or [None])[0]
    if not speaker:
        return DEFAULT_VOICE

    character = next((c for c in characters if c.name == speaker), None)
    if character is None:
        return DEFAULT_VOICE
    if voice_map and voice_map.get(character.id):
        return voice_map[character.id]
    return character.default_voice or DEFAULT_VOICE
