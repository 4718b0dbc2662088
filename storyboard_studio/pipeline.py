"""
Storyboard Generation Pipeline

Orchestrates script analysis and the sequential batch steps:
characters -> scenes -> panel images -> dialogue audio.

Batches never run units in parallel. A Pacer spaces units out to respect
upstream rate limits, failed units are recorded and skipped, and each
finished unit is handed to the caller's commit callback right away.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar

from .artifact import Character, Scene, Storyboard, StoryboardFrame
from .frames import (
    characters_from_drafts,
    frames_from_panels,
    scenes_from_drafts,
    transition_audio_status,
    transition_status,
    voice_for_frame,
)
from .images import generate_image
from .prompts import (
    construct_character_prompt,
    construct_scene_grid_prompt,
    construct_scene_prompt,
    frame_prompt,
)
from .script_analysis import analyze_script, extract_world_info
from .speech import AudioResource, generate_speech

T = TypeVar("T")

CHARACTER_DELAY = 1.5
SCENE_DELAY = 1.0
SCENE_GRID_DELAY = 1.0
FRAME_DELAY = 2.0
AUDIO_DELAY = 0.5


# ---------- Pacing ----------

class Pacer:
    """Throttled iteration: a fixed delay between consecutive units."""

    def __init__(self, delay: float, sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep):
        self.delay = delay
        self._sleep = sleep

    async def pause(self, delay: Optional[float] = None) -> None:
        await self._sleep(self.delay if delay is None else delay)

    async def paced(self, items: Iterable[T]) -> AsyncIterator[T]:
        for index, item in enumerate(items):
            if index > 0:
                await self.pause()
            yield item


@dataclass
class BatchReport:
    """Outcome of a batch: ids that completed and ids that failed with their error."""
    succeeded: List[str] = field(default_factory=list)
    failed: Dict[str, BaseException] = field(default_factory=dict)
    skipped: List[str] = field(default_factory=list)

    def summary(self) -> str:
        return f"{len(self.succeeded)} success, {len(self.failed)} failed, {len(self.skipped)} skipped"


# ---------- Script analysis ----------

async def build_storyboard(script: str, api_key: Optional[str] = None) -> Storyboard:
    """Run both analysis phases and promote the results into owned records.

    Args:
        script: Full script text
        api_key: Optional credential override

    Returns:
        New characters, scenes and pending frames with preview prompts
    """
    print("🔍 Extracting characters and scenes...")
    world = await extract_world_info(script, api_key=api_key)
    print(f"  ✅ {len(world.characters)} characters, {len(world.scenes)} scenes")

    print("🎬 Breaking script into panels...")
    names = [c.name for c in world.characters if c.name]
    panels = await analyze_script(script, names, api_key=api_key)
    print(f"  ✅ {len(panels)} panels")

    characters = characters_from_drafts(world.characters)
    scenes = scenes_from_drafts(world.scenes)
    frames = frames_from_panels(panels, characters, scenes)
    return Storyboard(characters=characters, scenes=scenes, frames=frames)


# ---------- Characters ----------

async def generate_all_characters(
    characters: Sequence[Character],
    commit: Callable[[str, str], None],
    pacer: Optional[Pacer] = None,
    api_key: Optional[str] = None,
) -> BatchReport:
    """Generate a model sheet for every character, one at a time.

    commit(character_id, image_url) is called as soon as each sheet is ready.
    """
    pacer = pacer or Pacer(CHARACTER_DELAY)
    report = BatchReport()

    print(f"🎨 Generating {len(characters)} character sheets")

    async for character in pacer.paced(characters):
        try:
            image_url = await generate_image(construct_character_prompt(character), "16:9", api_key=api_key)
            commit(character.id, image_url)
            report.succeeded.append(character.id)
            print(f"  ✅ {character.name}")
        except Exception as e:
            report.failed[character.id] = e
            print(f"  ❌ Failed to generate {character.name}: {str(e)[:100]}")

    print(f"  📊 Character sheets: {report.summary()}")
    return report


# ---------- Scenes ----------

async def generate_scene_set(scene: Scene, pacer: Optional[Pacer] = None, api_key: Optional[str] = None) -> Tuple[str, str]:
    """Generate the 16:9 panorama and then the 1:1 detail grid for one scene."""
    pacer = pacer or Pacer(SCENE_GRID_DELAY)
    panorama_url = await generate_image(construct_scene_prompt(scene), "16:9", api_key=api_key)
    await pacer.pause(SCENE_GRID_DELAY)
    grid_url = await generate_image(construct_scene_grid_prompt(scene), "1:1", api_key=api_key)
    return panorama_url, grid_url


async def generate_all_scenes(
    scenes: Sequence[Scene],
    commit: Callable[[str, str, str], None],
    pacer: Optional[Pacer] = None,
    api_key: Optional[str] = None,
) -> BatchReport:
    """Generate panorama and grid for every scene; commit(scene_id, panorama_url, grid_url)."""
    pacer = pacer or Pacer(SCENE_DELAY)
    report = BatchReport()

    print(f"🎨 Generating concept art for {len(scenes)} scenes")

    async for scene in pacer.paced(scenes):
        try:
            panorama_url, grid_url = await generate_scene_set(scene, pacer, api_key=api_key)
            commit(scene.id, panorama_url, grid_url)
            report.succeeded.append(scene.id)
            print(f"  ✅ {scene.name}")
        except Exception as e:
            report.failed[scene.id] = e
            print(f"  ❌ Failed to generate for {scene.name}: {str(e)[:100]}")

    print(f"  📊 Scenes: {report.summary()}")
    return report


# ---------- Panel images ----------

async def generate_frame_image(
    frame: StoryboardFrame,
    characters: Sequence[Character],
    scenes: Sequence[Scene],
    commit: Optional[Callable[[StoryboardFrame], None]] = None,
    api_key: Optional[str] = None,
) -> StoryboardFrame:
    """Generate one panel image from the frame's current bindings.

    The prompt is recompiled right before generation and recorded on the frame
    together with the image. The generating and final frames are passed to
    commit. On failure the error frame is committed and the exception re-raised.
    """
    generating = transition_status(frame, "generating")
    if commit:
        commit(generating)

    prompt = frame_prompt(generating, characters, scenes)
    try:
        image_url = await generate_image(prompt, "16:9", api_key=api_key)
    except Exception:
        failed = transition_status(generating, "error")
        if commit:
            commit(failed)
        raise

    done = transition_status(generating, "done", generated_image_url=image_url, current_prompt=prompt)
    if commit:
        commit(done)
    return done


async def generate_all_frame_images(
    frames: Sequence[StoryboardFrame],
    characters: Sequence[Character],
    scenes: Sequence[Scene],
    commit: Callable[[StoryboardFrame], None],
    pacer: Optional[Pacer] = None,
    api_key: Optional[str] = None,
) -> BatchReport:
    """Generate images for frames that have none yet or previously failed."""
    pacer = pacer or Pacer(FRAME_DELAY)
    report = BatchReport()

    todo = []
    for frame in frames:
        if not frame.generated_image_url or frame.status == "error":
            todo.append(frame)
        else:
            report.skipped.append(frame.id)

    print(f"🎨 Generating {len(todo)} panel images")

    async for frame in pacer.paced(todo):
        try:
            await generate_frame_image(frame, characters, scenes, commit=commit, api_key=api_key)
            report.succeeded.append(frame.id)
            print(f"  ✅ Panel {frame.panel_number}")
        except Exception as e:
            report.failed[frame.id] = e
            print(f"  ❌ Panel {frame.panel_number} failed: {str(e)[:100]}")

    print(f"  📊 Panel images: {report.summary()}")
    return report


# ---------- Dialogue audio ----------

def has_dialogue(frame: StoryboardFrame) -> bool:
    return bool(frame.dialogue and frame.dialogue.strip())


async def generate_frame_audio(
    frame: StoryboardFrame,
    characters: Sequence[Character],
    voice_map: Optional[Dict[str, str]] = None,
    commit: Optional[Callable[[StoryboardFrame, Optional[AudioResource]], None]] = None,
    api_key: Optional[str] = None,
) -> Tuple[StoryboardFrame, AudioResource]:
    """Speak the frame's dialogue with its speaker's voice.

    Returns:
        The done frame (audio_url set) and the AudioResource the caller must revoke
    """
    if not has_dialogue(frame):
        raise ValueError(f"Panel {frame.panel_number} has no dialogue")

    generating = transition_audio_status(frame, "generating")
    if commit:
        commit(generating, None)

    try:
        audio = await generate_speech(frame.dialogue, voice_for_frame(frame, characters, voice_map), api_key=api_key)
    except Exception:
        failed = transition_audio_status(generating, "error")
        if commit:
            commit(failed, None)
        raise

    done = transition_audio_status(generating, "done", audio_url=audio.url)
    if commit:
        try:
            commit(done, audio)
        except Exception:
            audio.revoke()
            raise
    return done, audio


async def generate_all_dialogue_audio(
    frames: Sequence[StoryboardFrame],
    characters: Sequence[Character],
    commit: Callable[[StoryboardFrame, Optional[AudioResource]], None],
    voice_map: Optional[Dict[str, str]] = None,
    pacer: Optional[Pacer] = None,
    api_key: Optional[str] = None,
) -> BatchReport:
    """Generate audio for every frame with dialogue and no audio yet."""
    pacer = pacer or Pacer(AUDIO_DELAY)
    report = BatchReport()

    todo = []
    for frame in frames:
        if has_dialogue(frame) and not frame.audio_url:
            todo.append(frame)
        else:
            report.skipped.append(frame.id)

    print(f"🎙️ Generating dialogue audio for {len(todo)} panels")

    async for frame in pacer.paced(todo):
        try:
            await generate_frame_audio(frame, characters, voice_map, commit=commit, api_key=api_key)
            report.succeeded.append(frame.id)
            print(f"  ✅ Panel {frame.panel_number}")
        except Exception as e:
            report.failed[frame.id] = e
            print(f"  ❌ Failed audio for panel {frame.panel_number}: {str(e)[:100]}")

    print(f"  📊 Dialogue audio: {report.summary()}")
    return report
