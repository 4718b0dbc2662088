import os

import pytest
from pydantic import BaseModel

import gemini_wrapper
from storyboard_studio.errors import CredentialMissing, ProviderError, TransientProviderError
from storyboard_studio.script_analysis import PanelOutput

from conftest import run, text_response


def test_resolve_api_key_order(monkeypatch):
    monkeypatch.setenv("API_KEY", "fallback")

    assert gemini_wrapper.resolve_api_key("override") == "override"
    assert gemini_wrapper.resolve_api_key() == "test-key"

    monkeypatch.delenv("GEMINI_API_KEY")
    assert gemini_wrapper.resolve_api_key() == "fallback"

    monkeypatch.delenv("API_KEY")
    with pytest.raises(CredentialMissing):
        gemini_wrapper.resolve_api_key("  ")


def test_error_bodies_map_to_provider_errors():
    with pytest.raises(TransientProviderError) as exc_info:
        gemini_wrapper._raise_for_error(503, '{"error": {"code": 503, "message": "The model is overloaded.", "status": "UNAVAILABLE"}}')
    assert exc_info.value.status == 503
    assert exc_info.value.error["status"] == "UNAVAILABLE"

    with pytest.raises(ProviderError) as exc_info:
        gemini_wrapper._raise_for_error(400, "bad request")
    assert not isinstance(exc_info.value, TransientProviderError)
    assert exc_info.value.status == 400

    assert gemini_wrapper._raise_for_error(200, '{"candidates": []}') == {"candidates": []}


def test_extract_text_joins_text_parts():
    response = {"candidates": [{"content": {"parts": [{"text": "[{"}, {"inlineData": {"data": "AA"}}, {"text": "}]"}]}}]}

    assert gemini_wrapper.extract_text(response) == "[{}]"
    assert gemini_wrapper.extract_text({"candidates": []}) == ""


def test_array_schema_hoists_definitions():
    class Inner(BaseModel):
        value: int

    class Outer(BaseModel):
        inner: Inner

    schema = gemini_wrapper.build_response_schema(Outer, as_array=True)

    assert schema["type"] == "array"
    assert "$defs" in schema and "$defs" not in schema["items"]
    assert "title" not in schema["items"]

    panel_schema = gemini_wrapper.build_response_schema(PanelOutput, as_array=True)
    assert "panel_id" in panel_schema["items"]["properties"]


def test_generate_content_posts_and_logs(monkeypatch):
    sent = {}

    async def _post_json(url, api_key, payload):
        sent.update(url=url, api_key=api_key, payload=payload)
        return text_response("ok")

    monkeypatch.setattr(gemini_wrapper, "_post_json", _post_json)

    response = run(gemini_wrapper.generate_content_async(
        "gemini-2.5-flash",
        gemini_wrapper.build_text_contents("Describe the scene in detail please"),
        generation_config={"responseMimeType": "application/json"},
    ))

    assert gemini_wrapper.extract_text(response) == "ok"
    assert sent["url"].endswith("/models/gemini-2.5-flash:generateContent")
    assert sent["api_key"] == "test-key"
    assert sent["payload"]["generationConfig"] == {"responseMimeType": "application/json"}

    with open(os.environ["LLM_LOG_PATH"], encoding="utf-8") as f:
        log = f.read()
    assert "generate_content:gemini-2.5-flash" in log
    assert "Describe the scene i..." in log


def test_predict_images_payload(monkeypatch):
    sent = {}

    async def _post_json(url, api_key, payload):
        sent.update(url=url, payload=payload)
        return {"predictions": []}

    monkeypatch.setattr(gemini_wrapper, "_post_json", _post_json)

    run(gemini_wrapper.predict_images_async("imagen-3.0-generate-001", "a castle", aspect_ratio="4:3", logging=False))

    assert sent["url"].endswith("/models/imagen-3.0-generate-001:predict")
    assert sent["payload"] == {
        "instances": [{"prompt": "a castle"}],
        "parameters": {"sampleCount": 1, "aspectRatio": "4:3", "outputOptions": {"mimeType": "image/jpeg"}},
    }
