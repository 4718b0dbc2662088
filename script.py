#!/usr/bin/env python3

import asyncio
import sys
from pathlib import Path
from dotenv import load_dotenv

from storyboard_studio import (
    build_storyboard,
    generate_all_characters,
    generate_all_scenes,
    generate_all_frame_images,
    generate_all_dialogue_audio,
)
from storyboard_studio.utils import save_image_to_data, save_audio_to_data, save_storyboard_checkpoint

load_dotenv()


async def main(script_path: str):
    script = Path(script_path).read_text(encoding="utf-8")
    project_name = Path(script_path).stem

    print(f"Starting storyboard pipeline for: {project_name}")
    print("=" * 50)

    storyboard = await build_storyboard(script)
    save_storyboard_checkpoint(storyboard, project_name, "analysis")

    characters = {c.id: c for c in storyboard.characters}
    scenes = {s.id: s for s in storyboard.scenes}
    frames = {f.id: f for f in storyboard.frames}
    audio = []

    def commit_character(character_id, image_url):
        characters[character_id] = characters[character_id].model_copy(update={"image_url": image_url})
        save_image_to_data(image_url, project_name, "character", characters[character_id].name)

    def commit_scene(scene_id, panorama_url, grid_url):
        scenes[scene_id] = scenes[scene_id].model_copy(update={"image_url": panorama_url, "grid_url": grid_url})
        save_image_to_data(panorama_url, project_name, "scene", scenes[scene_id].name)
        save_image_to_data(grid_url, project_name, "grid", scenes[scene_id].name)

    def commit_frame(frame):
        frames[frame.id] = frame
        if frame.status == "done":
            save_image_to_data(frame.generated_image_url, project_name, "panel", f"panel_{frame.panel_number}")

    def commit_audio(frame, resource):
        frames[frame.id] = frame
        if resource is not None:
            save_audio_to_data(resource, project_name, f"panel_{frame.panel_number}")
            audio.append(resource)

    await generate_all_characters(list(characters.values()), commit_character)
    await generate_all_scenes(list(scenes.values()), commit_scene)
    await generate_all_frame_images(list(frames.values()), list(characters.values()), list(scenes.values()), commit_frame)
    await generate_all_dialogue_audio(list(frames.values()), list(characters.values()), commit_audio)

    storyboard = storyboard.model_copy(update={
        "characters": list(characters.values()),
        "scenes": list(scenes.values()),
        "frames": list(frames.values()),
    })
    checkpoint = save_storyboard_checkpoint(storyboard, project_name, "generation")

    for resource in audio:
        resource.revoke()

    print("=" * 50)
    print("Storyboard pipeline completed!")
    print(f"Generated {len(storyboard.frames)} panels")
    print(f"Storyboard saved to {checkpoint}")


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: python script.py <script.txt>")
        sys.exit(1)
    asyncio.run(main(sys.argv[1]))
