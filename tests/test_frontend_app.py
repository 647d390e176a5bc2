"""
Test cases for Streamlit frontend helpers
"""
from unittest.mock import patch

import pytest

import frontend_app
from guidance import ApiGuidanceClient
from item_form import SIZE_OPTIONS


def test_widget_keys_change_with_generation():
    assert frontend_app.widget_key("item_name", 0) != frontend_app.widget_key("item_name", 1)


def test_choice_index():
    assert frontend_app.choice_index(SIZE_OPTIONS, "") == 0
    assert frontend_app.choice_index(SIZE_OPTIONS, SIZE_OPTIONS[0]) == 1
    assert frontend_app.choice_index(SIZE_OPTIONS, "Not a size") == 0


def test_get_workflow_reuses_session_workflow():
    class _State(dict):
        __getattr__ = dict.__getitem__

        def __setattr__(self, name, value):
            self[name] = value

    fake_session_state = _State()
    with patch.object(frontend_app.st, "session_state", fake_session_state):
        first = frontend_app.get_workflow("http://localhost:8000")
        first.update_field("item_name", "Kettle")
        second = frontend_app.get_workflow("http://other:9000")

    assert first is second
    assert second.state.item.item_name == "Kettle"
    assert isinstance(second.client, ApiGuidanceClient)
    assert second.client.base_url == "http://other:9000"


def test_api_call_wraps_request_errors():
    with patch.object(frontend_app.requests, "get", side_effect=frontend_app.requests.ConnectionError("down")):
        with pytest.raises(RuntimeError):
            frontend_app.api_call("GET", "/health", "http://localhost:8000")
