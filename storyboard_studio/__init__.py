"""
Storyboard Studio Core Module

Turns a narrative script into character sheets, scene concept art, panel
illustrations and dialogue audio by orchestrating Gemini generation calls:
script analysis, prompt assembly, tiered image generation, speech synthesis
with WAV encoding, and paced sequential batches.
"""

from .artifact import (
    Character,
    Scene,
    CharacterDraft,
    SceneDraft,
    WorldInfo,
    ScriptPanel,
    StoryboardFrame,
    Storyboard,
    StrictModel
)

from .errors import (
    StoryboardError,
    CredentialMissing,
    ProviderError,
    TransientProviderError,
    ParseError,
    GenerationExhausted,
    AudioMissing,
    InvalidTransition
)

from .resilience import invoke, is_transient_error

from .script_analysis import extract_world_info, analyze_script

from .prompts import (
    construct_character_prompt,
    construct_scene_prompt,
    construct_scene_grid_prompt,
    construct_panel_prompt
)

from .images import (
    ASPECT_RATIOS,
    generate_image,
    ImagePayload,
    TextRefusal,
    SoftRefusal,
    Empty
)

from .speech import (
    VOICE_OPTIONS,
    AudioResource,
    generate_speech,
    pcm_to_wav
)

from .frames import (
    characters_from_drafts,
    scenes_from_drafts,
    frames_from_panels,
    update_frame,
    assign_scene,
    toggle_character,
    set_manual_prompt,
    voice_for_frame
)

from .pipeline import (
    Pacer,
    BatchReport,
    build_storyboard,
    generate_all_characters,
    generate_scene_set,
    generate_all_scenes,
    generate_frame_image,
    generate_all_frame_images,
    generate_frame_audio,
    generate_all_dialogue_audio
)

__all__ = [
    # Core models
    "Character",
    "Scene",
    "CharacterDraft",
    "SceneDraft",
    "WorldInfo",
    "ScriptPanel",
    "StoryboardFrame",
    "Storyboard",
    "StrictModel",

    # Errors
    "StoryboardError",
    "CredentialMissing",
    "ProviderError",
    "TransientProviderError",
    "ParseError",
    "GenerationExhausted",
    "AudioMissing",
    "InvalidTransition",

    # Resilience
    "invoke",
    "is_transient_error",

    # Script analysis
    "extract_world_info",
    "analyze_script",

    # Prompts
    "construct_character_prompt",
    "construct_scene_prompt",
    "construct_scene_grid_prompt",
    "construct_panel_prompt",

    # Images
    "ASPECT_RATIOS",
    "generate_image",
    "ImagePayload",
    "TextRefusal",
    "SoftRefusal",
    "Empty",

    # Speech
    "VOICE_OPTIONS",
    "AudioResource",
    "generate_speech",
    "pcm_to_wav",

    # Frames
    "characters_from_drafts",
    "scenes_from_drafts",
    "frames_from_panels",
    "update_frame",
    "assign_scene",
    "toggle_character",
    "set_manual_prompt",
    "voice_for_frame",

    # Pipeline
    "Pacer",
    "BatchReport",
    "build_storyboard",
    "generate_all_characters",
    "generate_scene_set",
    "generate_all_scenes",
    "generate_frame_image",
    "generate_all_frame_images",
    "generate_frame_audio",
    "generate_all_dialogue_audio"
]
