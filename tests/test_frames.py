import pytest

from storyboard_studio.artifact import CharacterDraft, SceneDraft, ScriptPanel
from storyboard_studio.errors import InvalidTransition
from storyboard_studio.frames import (
    assign_scene,
    characters_from_drafts,
    frames_from_panels,
    match_scene_for_panel,
    scenes_from_drafts,
    set_manual_prompt,
    toggle_character,
    transition_audio_status,
    transition_status,
    update_frame,
    voice_for_frame,
)
from storyboard_studio.prompts import construct_panel_prompt, frame_prompt


def _panels():
    return [
        ScriptPanel(panel_number=1, description="Alice sneaks into the Old Factory", characters_present=["Alice"], camera_angle="Wide"),
        ScriptPanel(panel_number=2, description="Bob waves from the rooftop", characters_present=["Bob"], dialogue="Over here!", camera_angle="Medium"),
    ]


def test_drafts_become_owned_records():
    characters = characters_from_drafts([CharacterDraft(name="Alice", visual_prompt="silver hair"), CharacterDraft()])
    scenes = scenes_from_drafts([SceneDraft(description="dark")])

    assert characters[0].name == "Alice"
    assert characters[1].name == "Unknown"
    assert characters[1].visual_prompt == ""
    assert characters[0].id != characters[1].id
    assert scenes[0].name == "Unknown"
    assert scenes[0].description == "dark"


def test_frames_auto_bind_scene_and_precompute_prompt(roster, factory_scene):
    frames = frames_from_panels(_panels(), roster, [factory_scene])

    assert [f.panel_number for f in frames] == [1, 2]
    assert frames[0].assigned_scene_id == "s1"
    assert frames[1].assigned_scene_id is None
    assert frames[0].status == "pending"
    assert frames[0].audio_status == "idle"
    assert frames[0].current_prompt == construct_panel_prompt(_panels()[0], roster, factory_scene)
    assert factory_scene.visual_prompt in frames[0].current_prompt


def test_match_scene_requires_description(factory_scene):
    panel = ScriptPanel(description="", characters_present=[])

    assert match_scene_for_panel(panel, [factory_scene]) is None


def test_assign_scene_recomputes_prompt(roster, factory_scene):
    frame = frames_from_panels(_panels(), roster, [factory_scene])[1]

    bound = assign_scene(frame, "s1", roster, [factory_scene])

    assert bound.assigned_scene_id == "s1"
    assert factory_scene.visual_prompt in bound.current_prompt
    assert bound.current_prompt == frame_prompt(bound, roster, [factory_scene])
    assert frame.assigned_scene_id is None

    unbound = assign_scene(bound, None, roster, [factory_scene])
    assert "Atmospheric background" in unbound.current_prompt


def test_assign_unknown_scene_rejected(roster, factory_scene):
    frame = frames_from_panels(_panels(), roster, [factory_scene])[0]

    with pytest.raises(ValueError):
        assign_scene(frame, "missing", roster, [factory_scene])


def test_toggle_character_adds_and_removes(roster, factory_scene):
    frame = frames_from_panels(_panels(), roster, [factory_scene])[0]

    with_bob = toggle_character(frame, "Bob", roster, [factory_scene])
    assert with_bob.characters_present == ["Alice", "Bob"]
    assert roster[1].visual_prompt in with_bob.current_prompt

    without_alice = toggle_character(with_bob, "Alice", roster, [factory_scene])
    assert without_alice.characters_present == ["Bob"]
    assert roster[0].visual_prompt not in without_alice.current_prompt


def test_panel_number_cannot_change(roster):
    frame = frames_from_panels(_panels(), roster, [])[0]

    with pytest.raises(ValueError):
        update_frame(frame, roster, [], panel_number=7)


def test_manual_prompt_override(roster):
    frame = frames_from_panels(_panels(), roster, [])[0]

    assert set_manual_prompt(frame, "custom").current_prompt == "custom"


def test_status_machine(roster):
    frame = frames_from_panels(_panels(), roster, [])[0]

    generating = transition_status(frame, "generating")
    failed = transition_status(generating, "error")
    with pytest.raises(InvalidTransition):
        transition_status(failed, "done")
    with pytest.raises(InvalidTransition):
        transition_status(frame, "done")

    retried = transition_status(failed, "generating")
    done = transition_status(retried, "done", generated_image_url="data:image/png;base64,AA")
    assert done.status == "done"
    assert done.generated_image_url == "data:image/png;base64,AA"
    assert done.audio_status == "idle"


def test_audio_status_machine_is_independent(roster):
    frame = transition_status(frames_from_panels(_panels(), roster, [])[1], "generating")

    audio = transition_audio_status(frame, "generating")
    assert audio.status == "generating"
    failed = transition_audio_status(audio, "error")
    with pytest.raises(InvalidTransition):
        transition_audio_status(failed, "done")


def test_voice_for_frame(roster):
    frame = frames_from_panels(_panels(), roster, [])[1]
    alice_frame = frames_from_panels(_panels(), roster, [])[0]
    nobody = ScriptPanel(description="empty street", characters_present=[])

    assert voice_for_frame(frame, roster) == "Puck"
    assert voice_for_frame(frame, roster, {"c2": "Charon"}) == "Charon"
    assert voice_for_frame(alice_frame, roster) == "Kore"
    assert voice_for_frame(nobody, roster) == "Kore"
