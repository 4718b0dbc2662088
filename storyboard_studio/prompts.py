"""
Prompt construction for character sheets, scene art and storyboard panels.

Pure functions: the same inputs always give the same prompt string, so a
prompt can be previewed before anything is generated.
"""

from __future__ import annotations

from typing import Optional, Sequence

from .artifact import ScriptPanel


PANEL_STYLE_PREAMBLE = "(Anime Style Masterpiece, 8k Resolution, Cinematic Composition). "
GENERIC_LOCATION = "Atmospheric background, matching the mood. "
GENERIC_CHARACTER = "Generic anime character."


def construct_character_prompt(character) -> str:
    """Production model sheet: front/side/back full body plus expression and accessory inserts."""
    return (
        "[Art Type] **Production Character Model Sheet (Settei)**.\n"
        f"[Subject] Name: {character.name}.\n"
        f"[Visual DNA] {character.visual_prompt}.\n"
        "[Layout] **Horizontal Composition** on Technical Grid Background.\n"
        "1. **Left**: Full body Standing pose (Front View).\n"
        "2. **Center**: Full body Profile pose (Side View).\n"
        "3. **Right**: Full body (Back View).\n"
        "4. **Inserts**: Include 2 close-up sketches of facial expressions (Eyes/Face) and 1 detail of clothing/accessory in the corners.\n"
        "[Background] White/Light Grey background with technical measurement grid lines.\n"
        "[Style] Professional Anime Character Design, Flat colors, Clean lines, Reference Art, High Quality 4k."
    )


def construct_scene_prompt(scene) -> str:
    """Wide-angle panorama of a location, without characters."""
    return (
        "[Type] Wide-angle Concept Art.\n"
        f"[Location] {scene.name}.\n"
        f"[Visuals] {scene.visual_prompt}.\n"
        "[Quality] Masterpiece, Cinematic Lighting, 8k, Makoto Shinkai Style.\n"
        "[Style] Anime Background Art.\n"
        "No characters."
    )


def construct_scene_grid_prompt(scene) -> str:
    return (
        "[Type] 9-Panel Grid Concept Sheet.\n"
        f"[Subject] Details of {scene.name}.\n"
        f"[Visuals] {scene.visual_prompt}.\n"
        "[Content] Close-ups of props, textures, lighting, corners.\n"
        "[Style] Technical concept art."
    )


def find_character(name: str, characters: Sequence):
    """Resolve a character name against the roster.

    Exact name match wins; otherwise the first roster entry whose name
    contains, or is contained in, the given name.
    """
    for character in characters:
        if character.name == name:
            return character
    for character in characters:
        if character.name and (character.name in name or name in character.name):
            return character
    return None


def construct_panel_prompt(panel: ScriptPanel, characters: Sequence, scene=None) -> str:
    """Compile a panel into an image prompt.

    Action and camera come first, then the location and each character's
    visual DNA.

    Args:
        panel: Panel or frame to compile
        characters: Character roster used to resolve names
        scene: Bound scene, if any

    Returns:
        Prompt text
    """
    prompt = PANEL_STYLE_PREAMBLE

    prompt += f"\n[ACTION & SHOT] **{panel.camera_angle}**. {panel.description}. "

    if scene is not None:
        prompt += f"\n[LOCATION] {scene.visual_prompt} (Name: {scene.name}). Detailed background. "
    else:
        prompt += f"\n[LOCATION] {GENERIC_LOCATION}"

    names = panel.characters_present or []
    if names:
        prompt += "\n[CHARACTERS]:"
        for name in names:
            character = find_character(name, characters)
            if character is not None:
                prompt += f"\n- ({name}): {character.visual_prompt}"
            else:
                prompt += f"\n- ({name}): {GENERIC_CHARACTER}"

    return prompt


def frame_prompt(frame: ScriptPanel, characters: Sequence, scenes: Sequence) -> str:
    """Compile a frame using the scene it is bound to through assigned_scene_id."""
    return construct_panel_prompt(frame, characters, find_scene(getattr(frame, "assigned_scene_id", None), scenes))


def find_scene(scene_id: Optional[str], scenes: Sequence):
    if not scene_id:
        return None
    return next((s for s in scenes if s.id == scene_id), None)
