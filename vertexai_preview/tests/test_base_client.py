# Copyright 2025 Cisco Systems, Inc. and its affiliates
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# SPDX-License-Identifier: Apache-2.0

from unittest.mock import Mock

import pytest

from vertexai_preview.auth import GoogleAuth
from vertexai_preview.base_client import BaseClient
from vertexai_preview.config import Config
from vertexai_preview.exceptions import OperationError, ValidationError


@pytest.fixture(autouse=True)
def reset_config_singleton():
    """Reset Config singleton before each test."""
    Config._instances = {}
    yield
    Config._instances = {}


@pytest.fixture
def client():
    config = Config(project="p", operation_timeout=5, operation_poll_interval=0.01)
    return BaseClient(GoogleAuth(token="tok"), config, request_handler=Mock())


def test_make_request_builds_url_and_drops_none_params(client):
    client._request_handler.request.return_value = {"ok": True}

    result = client.make_request(method="GET", path="/projects/p/x", params={"a": 1, "b": None})

    assert result == {"ok": True}
    kwargs = client._request_handler.request.call_args.kwargs
    assert kwargs["method"] == "GET"
    assert kwargs["url"] == "https://us-central1-aiplatform.googleapis.com/v1beta1/projects/p/x"
    assert kwargs["params"] == {"a": 1}
    assert kwargs["auth"] is client.auth


def test_make_request_keeps_absolute_urls(client):
    client._request_handler.request.return_value = {}
    client.make_request(method="POST", path="https://example.com/predict", data={"instances": []})

    kwargs = client._request_handler.request.call_args.kwargs
    assert kwargs["url"] == "https://example.com/predict"
    assert kwargs["json_data"] == {"instances": []}
    assert kwargs["params"] is None


def test_parent(client):
    assert client.parent == "projects/p/locations/us-central1"


def test_get_operation_requires_name(client):
    with pytest.raises(ValidationError, match="operation name is required"):
        client.get_operation("")


def test_wait_for_done_operation_does_not_poll(client):
    result = client.wait_for_operation({"name": "operations/1", "done": True, "response": {"name": "r"}})
    assert result == {"name": "r"}
    client._request_handler.request.assert_not_called()


def test_wait_for_operation_polls_until_done(client):
    client._request_handler.request.side_effect = [
        {"name": "operations/1", "done": False},
        {"name": "operations/1", "done": True, "response": {"name": "r"}},
    ]

    result = client.wait_for_operation({"name": "operations/1"})

    assert result == {"name": "r"}
    assert client._request_handler.request.call_count == 2
    assert client._request_handler.request.call_args.kwargs["url"].endswith("/operations/1")


def test_wait_for_failed_operation(client):
    with pytest.raises(OperationError, match="failed: quota exceeded") as exc_info:
        client.wait_for_operation(
            {"name": "operations/2", "done": True, "error": {"code": 8, "message": "quota exceeded"}}
        )
    assert exc_info.value.operation_name == "operations/2"


def test_wait_for_operation_timeout(client):
    client._request_handler.request.return_value = {"name": "operations/3", "done": False}

    with pytest.raises(OperationError, match="timed out"):
        client.wait_for_operation({"name": "operations/3"}, timeout=0.05, poll_interval=0.01)


def test_done_operation_without_response(client):
    assert client.wait_for_operation({"name": "operations/4", "done": True}) == {}


def test_close_closes_handler(client):
    client.close()
    client._request_handler.close.assert_called_once()
