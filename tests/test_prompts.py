from storyboard_studio.artifact import Character, CharacterDraft, ScriptPanel
from storyboard_studio.prompts import (
    GENERIC_CHARACTER,
    construct_character_prompt,
    construct_panel_prompt,
    construct_scene_grid_prompt,
    construct_scene_prompt,
    find_character,
)


def _panel(**overrides):
    data = dict(
        panel_number=1,
        description="Alice grips the railing as sparks fly",
        characters_present=["Alice"],
        dialogue="",
        camera_angle="特写 (Close-up)",
    )
    data.update(overrides)
    return ScriptPanel(**data)


def test_panel_prompt_is_deterministic(roster, factory_scene):
    panel = _panel(characters_present=["Alice", "Bob"])

    first = construct_panel_prompt(panel, roster, factory_scene)
    second = construct_panel_prompt(panel, roster, factory_scene)

    assert first == second


def test_panel_prompt_sections(roster, factory_scene):
    prompt = construct_panel_prompt(_panel(), roster, factory_scene)

    assert prompt.startswith("(Anime Style Masterpiece, 8k Resolution, Cinematic Composition). ")
    assert "\n[ACTION & SHOT] **特写 (Close-up)**. Alice grips the railing as sparks fly. " in prompt
    assert f"\n[LOCATION] {factory_scene.visual_prompt} (Name: Old Factory). Detailed background. " in prompt
    assert prompt.endswith(f"\n[CHARACTERS]:\n- (Alice): {roster[0].visual_prompt}")


def test_panel_prompt_without_scene_uses_generic_location(roster):
    prompt = construct_panel_prompt(_panel(), roster)

    assert "\n[LOCATION] Atmospheric background, matching the mood. " in prompt
    assert "Detailed background" not in prompt


def test_panel_prompt_without_characters_has_no_character_section(roster):
    prompt = construct_panel_prompt(_panel(characters_present=[]), roster)

    assert "[CHARACTERS]" not in prompt


def test_fuzzy_match_resolves_longer_mention(roster):
    prompt = construct_panel_prompt(_panel(characters_present=["AliceSmith"]), roster)

    assert f"- (AliceSmith): {roster[0].visual_prompt}" in prompt


def test_fuzzy_match_resolves_shorter_mention():
    roster = [Character(id="c9", name="Captain Thorne", visual_prompt="scarred face, long grey coat")]

    assert find_character("Thorne", roster) is roster[0]


def test_unmatched_name_gets_placeholder():
    roster = [Character(id="c1", name="Alice", visual_prompt="silver hair")]

    prompt = construct_panel_prompt(_panel(characters_present=["Bob"]), roster)

    assert f"- (Bob): {GENERIC_CHARACTER}" in prompt
    assert "silver hair" not in prompt


def test_exact_match_wins_over_substring():
    roster = [
        Character(id="c1", name="Li", visual_prompt="short black hair"),
        Character(id="c2", name="Liu", visual_prompt="long braid"),
    ]

    assert find_character("Liu", roster) is roster[1]


def test_short_roster_name_matches_longer_mention():
    roster = [Character(id="c1", name="Li", visual_prompt="short black hair")]

    assert find_character("Liu", roster) is roster[0]


def test_character_prompt_merges_visual_dna():
    draft = CharacterDraft(name="林晓", visual_prompt="银色长发，锐利的蓝色眼睛")

    prompt = construct_character_prompt(draft)

    assert "[Subject] Name: 林晓." in prompt
    assert "[Visual DNA] 银色长发，锐利的蓝色眼睛." in prompt
    assert "Front View" in prompt and "Side View" in prompt and "Back View" in prompt
    assert "2 close-up sketches of facial expressions" in prompt
    assert prompt == construct_character_prompt(draft)


def test_scene_prompts(factory_scene):
    panorama = construct_scene_prompt(factory_scene)
    grid = construct_scene_grid_prompt(factory_scene)

    assert "[Type] Wide-angle Concept Art." in panorama
    assert "[Location] Old Factory." in panorama
    assert panorama.endswith("No characters.")
    assert "[Type] 9-Panel Grid Concept Sheet." in grid
    assert "[Subject] Details of Old Factory." in grid
    assert f"[Visuals] {factory_scene.visual_prompt}." in grid
