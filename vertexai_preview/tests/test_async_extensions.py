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

from unittest.mock import AsyncMock, Mock

import pytest

from vertexai_preview.auth import AsyncGoogleAuth
from vertexai_preview.config import AsyncConfig, Config
from vertexai_preview.exceptions import ApiError, NotFoundError, ValidationError
from vertexai_preview.extensions import (
    AsyncExtensionClient,
    ExtensionExecutionError,
    ExtensionNotFoundError,
    RegionNotSupportedError,
)

PARENT = "projects/p/locations/us-central1"
BASE_URL = "https://us-central1-aiplatform.googleapis.com/v1beta1"
EXTENSION = f"{PARENT}/extensions/123"


@pytest.fixture(autouse=True)
def reset_config_singletons():
    """Reset Config and AsyncConfig singletons before each test."""
    Config._instances = {}
    AsyncConfig._instances = {}
    yield
    Config._instances = {}
    AsyncConfig._instances = {}


@pytest.fixture
def client():
    """Create an async extension client with a mock _request_handler."""
    client = AsyncExtensionClient(config=AsyncConfig(project="p"), token="tok", extension_name=EXTENSION)
    client._request_handler = Mock()
    client._request_handler.ensure_session = AsyncMock()
    client._request_handler.request = AsyncMock()
    client._request_handler.close = AsyncMock()
    return client


def test_init():
    client = AsyncExtensionClient(config=AsyncConfig(project="p"), token="tok")
    assert isinstance(client.auth, AsyncGoogleAuth)
    assert client.resource_name is None


def test_rejects_sync_config():
    with pytest.raises(ValueError, match="config must be an AsyncConfig object."):
        AsyncExtensionClient(config=Config(project="p"), token="tok")


def test_region_not_supported():
    with pytest.raises(RegionNotSupportedError):
        AsyncExtensionClient(config=AsyncConfig(project="p", location="asia-east1"), token="tok")


@pytest.mark.asyncio
async def test_execute_extension(client):
    client._request_handler.request.return_value = {"content": '{"max": 5}'}

    result = await client.execute_extension("generate_and_execute", {"query": "max of [1, 5]"})

    client._request_handler.ensure_session.assert_awaited()
    kwargs = client._request_handler.request.call_args.kwargs
    assert kwargs["method"] == "POST"
    assert kwargs["url"] == f"{BASE_URL}/{EXTENSION}:execute"
    assert kwargs["auth"] is client.auth
    assert kwargs["json_data"] == {
        "operationId": "generate_and_execute",
        "operationParams": {"query": "max of [1, 5]"},
    }
    assert result.json_content() == {"max": 5}


@pytest.mark.asyncio
async def test_execute_extension_error(client):
    client._request_handler.request.side_effect = ApiError("API error 503: unavailable", 503)

    with pytest.raises(ExtensionExecutionError) as exc_info:
        await client.execute_extension("generate_and_execute")
    assert exc_info.value.status_code == 503


@pytest.mark.asyncio
async def test_execute_requires_operation_id(client):
    with pytest.raises(ValidationError):
        await client.execute_extension("")
    client._request_handler.request.assert_not_called()


@pytest.mark.asyncio
async def test_query_extension(client):
    client._request_handler.request.return_value = {"failureMessage": "no tools matched"}

    response = await client.query_extension(["What is", "the weather?"])

    kwargs = client._request_handler.request.call_args.kwargs
    assert kwargs["url"] == f"{BASE_URL}/{EXTENSION}:query"
    assert kwargs["json_data"] == {
        "contents": [{"role": "user", "parts": [{"text": "What is"}, {"text": "the weather?"}]}]
    }
    assert response.failure_message == "no tools matched"


@pytest.mark.asyncio
async def test_get_extension(client):
    client._request_handler.request.return_value = {"name": EXTENSION, "state": "ACTIVE"}

    extension = await client.get_extension()

    assert client._request_handler.request.call_args.kwargs["method"] == "GET"
    assert extension.state.value == "ACTIVE"


@pytest.mark.asyncio
async def test_get_extension_not_found(client):
    client._request_handler.request.side_effect = NotFoundError("Not found: gone", 404)
    with pytest.raises(ExtensionNotFoundError):
        await client.get_extension("456")
    assert client._request_handler.request.call_args.kwargs["url"] == f"{BASE_URL}/{PARENT}/extensions/456"


@pytest.mark.asyncio
async def test_make_request_drops_empty_params(client):
    client._request_handler.request.return_value = {}
    await client.make_request("GET", "https://example.com/x", params={"a": 1, "b": None})

    kwargs = client._request_handler.request.call_args.kwargs
    assert kwargs["url"] == "https://example.com/x"
    assert kwargs["params"] == {"a": 1}


@pytest.mark.asyncio
async def test_context_manager(client):
    async with client as entered:
        assert entered is client
    client._request_handler.ensure_session.assert_awaited_once()
    client._request_handler.close.assert_awaited_once()
