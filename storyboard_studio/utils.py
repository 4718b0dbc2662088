"""
Caller-side file utilities for the storyboard pipeline

The generation core never writes to disk. These helpers are for scripts that
want to keep what was generated:
- Decoding data URIs
- Saving images and audio with systematic naming
- Saving storyboard checkpoints
"""

import base64
import binascii
import os
import re
import shutil
from datetime import datetime
from typing import Tuple

from .artifact import Storyboard
from .speech import AudioResource

_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "audio/wav": "wav",
}


def sanitize_name(name: str) -> str:
    sanitized = re.sub(r'[^\w\-_]', '_', name)
    sanitized = re.sub(r'_+', '_', sanitized)
    sanitized = sanitized.strip('_')
    return sanitized.lower() or "item"


def decode_data_uri(data_uri: str) -> Tuple[str, bytes]:
    """Split a base64 data URI into (mime_type, bytes).

    Raises:
        ValueError: If the URI is not a base64 data URI
    """
    match = re.match(r"^data:([\w/+.-]+);base64,(.*)$", data_uri, re.DOTALL)
    if not match:
        raise ValueError("Not a base64 data URI")
    try:
        return match.group(1), base64.b64decode(match.group(2))
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Failed to decode base64 data: {str(e)}")


def _output_path(project_name: str, subdir: str, item_type: str, item_name: str, extension: str) -> str:
    out_dir = os.path.join("data", sanitize_name(project_name), subdir)
    os.makedirs(out_dir, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

    # {type}_{item_name}_{timestamp}.{ext}
    filename = f"{sanitize_name(item_type)}_{sanitize_name(item_name)}_{timestamp}.{extension}"
    return os.path.join(out_dir, filename)


def save_image_to_data(image_url: str, project_name: str, image_type: str, item_name: str) -> str:
    """Save a generated image data URI under data/{project}/images/.

    Args:
        image_url: Data URI returned by generate_image()
        project_name: Name of the project
        image_type: Type of image ('character', 'scene', 'grid', 'panel')
        item_name: Name of the item that was generated

    Returns:
        Local file path to the saved image
    """
    mime_type, image_bytes = decode_data_uri(image_url)
    filepath = _output_path(project_name, "images", image_type, item_name, _EXTENSIONS.get(mime_type, "bin"))

    with open(filepath, "wb") as f:
        f.write(image_bytes)

    return filepath


def save_audio_to_data(audio: AudioResource, project_name: str, item_name: str) -> str:
    """Copy a generated WAV resource under data/{project}/audio/."""
    filepath = _output_path(project_name, "audio", "dialogue", item_name, "wav")
    shutil.copyfile(audio.path, filepath)
    return filepath


def save_storyboard_checkpoint(storyboard: Storyboard, project_name: str, step_name: str) -> str:
    """Save storyboard state after a pipeline step.

    Returns:
        Path of the checkpoint JSON file
    """
    checkpoint_dir = os.path.join("data", sanitize_name(project_name))
    os.makedirs(checkpoint_dir, exist_ok=True)

    checkpoint_path = os.path.join(checkpoint_dir, f"storyboard_after_{step_name}.json")
    with open(checkpoint_path, "w", encoding="utf-8") as f:
        f.write(storyboard.model_dump_json(indent=2))

    print(f"Checkpoint saved: {checkpoint_path}")
    return checkpoint_path
