"""
Test cases for the Gemini and backend guidance clients
"""
import asyncio
import json
from unittest.mock import MagicMock

import pytest
import requests

from conftest import SAMPLE_GUIDANCE
from guidance import (
    ApiGuidanceClient,
    GeminiGuidanceClient,
    Guidance,
    GuidanceFetchError,
    build_prompt,
    parse_gemini_response,
)


def _response(status=200, body=None, json_error=None):
    response = MagicMock()
    response.status_code = status
    if status >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status} Server Error")
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = body
    return response


def _gemini_body(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def _session(response=None, error=None):
    session = MagicMock()
    if error is not None:
        session.post.side_effect = error
    else:
        session.post.return_value = response
    return session


def test_gemini_client_parses_guidance():
    """
    Test: Gemini returns a JSON guidance object
    Confirm: Parsed into Guidance, API key sent as header not in URL
    """
    session = _session(_response(body=_gemini_body(json.dumps(SAMPLE_GUIDANCE))))
    client = GeminiGuidanceClient(api_key="secret", model="gemini-test", timeout=5, session=session)

    guidance = asyncio.run(client.get_guidance("Item: Bottle\nMaterials: Plastic"))

    assert isinstance(guidance, Guidance)
    assert guidance.disposal_method == "Curbside recycling"
    url = session.post.call_args.args[0]
    kwargs = session.post.call_args.kwargs
    assert "gemini-test:generateContent" in url
    assert "secret" not in url
    assert kwargs["headers"] == {"x-goog-api-key": "secret"}
    assert kwargs["timeout"] == 5
    prompt = kwargs["json"]["contents"][0]["parts"][0]["text"]
    assert "Item: Bottle\nMaterials: Plastic" in prompt


def test_gemini_client_accepts_fenced_json():
    text = "```json\n" + json.dumps(SAMPLE_GUIDANCE) + "\n```"
    guidance = parse_gemini_response(_gemini_body(text))

    assert guidance.instructions[0] == "Empty the bottle"


def test_gemini_client_requires_api_key():
    session = _session(_response(body={}))
    client = GeminiGuidanceClient(api_key="", session=session)

    with pytest.raises(GuidanceFetchError):
        client.fetch_guidance("Item: Bottle")
    session.post.assert_not_called()


def test_blank_description_is_rejected_without_request():
    session = _session(_response(body={}))
    client = GeminiGuidanceClient(api_key="secret", session=session)

    with pytest.raises(GuidanceFetchError):
        client.fetch_guidance("   ")
    session.post.assert_not_called()


def test_network_failure_keeps_cause():
    cause = requests.ConnectionError("connection refused")
    client = GeminiGuidanceClient(api_key="secret", session=_session(error=cause))

    with pytest.raises(GuidanceFetchError) as excinfo:
        client.fetch_guidance("Item: Bottle")

    assert excinfo.value.cause is cause
    assert excinfo.value.__cause__ is cause


def test_non_success_status_is_failure():
    client = GeminiGuidanceClient(api_key="secret", session=_session(_response(status=503)))

    with pytest.raises(GuidanceFetchError):
        client.fetch_guidance("Item: Bottle")


def test_non_json_body_is_failure():
    client = GeminiGuidanceClient(
        api_key="secret",
        session=_session(_response(json_error=ValueError("Expecting value"))),
    )

    with pytest.raises(GuidanceFetchError):
        client.fetch_guidance("Item: Bottle")


@pytest.mark.parametrize(
    "body",
    [
        {},
        {"candidates": []},
        {"promptFeedback": {"blockReason": "SAFETY"}},
        _gemini_body("Sorry, I cannot help with that."),
        _gemini_body(json.dumps({"advice": "just recycle it"})),
        _gemini_body(json.dumps({**SAMPLE_GUIDANCE, "instructions": []})),
        _gemini_body(json.dumps({**SAMPLE_GUIDANCE, "disposal_method": "   "})),
    ],
)
def test_malformed_payloads_are_failures(body):
    with pytest.raises(GuidanceFetchError):
        parse_gemini_response(body)


def test_recyclable_is_normalized():
    data = {**SAMPLE_GUIDANCE, "item_analysis": {**SAMPLE_GUIDANCE["item_analysis"], "recyclable": " Depends "}}

    guidance = parse_gemini_response(_gemini_body(json.dumps(data)))

    assert guidance.item_analysis.recyclable == "depends"


def test_prompt_embeds_description():
    prompt = build_prompt("Item: Phone")

    assert "Item: Phone" in prompt
    assert "JSON" in prompt


def test_api_client_posts_description_to_backend():
    session = _session(_response(body=SAMPLE_GUIDANCE))
    client = ApiGuidanceClient(base_url="http://backend:8000/", session=session)

    guidance = asyncio.run(client.get_guidance("Item: Bottle"))

    assert guidance.item_analysis.primary_material == "PET plastic"
    session.post.assert_called_once()
    assert session.post.call_args.args[0] == "http://backend:8000/guidance"
    assert session.post.call_args.kwargs["json"] == {"description": "Item: Bottle"}


def test_api_client_maps_backend_error():
    client = ApiGuidanceClient(base_url="http://backend:8000", session=_session(_response(status=502)))

    with pytest.raises(GuidanceFetchError):
        asyncio.run(client.get_guidance("Item: Bottle"))


def test_api_client_rejects_unrecognized_body():
    client = ApiGuidanceClient(base_url="http://backend:8000", session=_session(_response(body=["not", "guidance"])))

    with pytest.raises(GuidanceFetchError):
        client.fetch_guidance("Item: Bottle")


@pytest.mark.parametrize(
    "suffix",
    [
        '\nExample of another format: {"note": "ignore me"}',
        "\n}",
        "\nThanks! {",
    ],
)
def test_first_json_object_wins_over_trailing_text(suffix):
    text = "Here is the guidance:\n" + json.dumps(SAMPLE_GUIDANCE) + suffix

    guidance = parse_gemini_response(_gemini_body(text))

    assert guidance.disposal_method == SAMPLE_GUIDANCE["disposal_method"]


def test_invalid_leading_brace_skips_to_next_object():
    text = "{not json} " + json.dumps(SAMPLE_GUIDANCE)

    guidance = parse_gemini_response(_gemini_body(text))

    assert guidance.instructions == SAMPLE_GUIDANCE["instructions"]
