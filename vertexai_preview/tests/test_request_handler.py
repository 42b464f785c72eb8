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

from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest
import requests

from vertexai_preview.async_request_handler import AsyncRequestHandler
from vertexai_preview.auth import GoogleAuth
from vertexai_preview.config import AsyncConfig, Config
from vertexai_preview.exceptions import ApiError, NotFoundError, SDKError, ValidationError
from vertexai_preview.request_handler import HttpMethod, RequestHandler

URL = "https://us-central1-aiplatform.googleapis.com/v1beta1/projects/p/locations/us-central1/cachedContents"


@pytest.fixture(autouse=True)
def reset_config_singleton():
    """Reset Config singletons before each test."""
    Config._instances = {}
    AsyncConfig._instances = {}
    yield
    Config._instances = {}
    AsyncConfig._instances = {}


@pytest.fixture
def handler():
    return RequestHandler(Config(project="p"))


def _response(status_code=200, json_data=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.content = text.encode() if text else (b"{}" if json_data is not None else b"")
    response.text = text
    if json_data is None:
        response.json.side_effect = ValueError("no json")
    else:
        response.json.return_value = json_data
    return response


class TestRequestHandler:
    def test_request_success(self, handler):
        with patch.object(handler._session, "request", return_value=_response(json_data={"name": "c1"})) as mock_request:
            result = handler.request(
                method=HttpMethod.GET.value,
                url=URL,
                auth=GoogleAuth(token="tok"),
                params={"pageSize": 10},
            )

        assert result == {"name": "c1"}
        kwargs = mock_request.call_args.kwargs
        assert kwargs["method"] == "GET"
        assert kwargs["url"] == URL
        assert kwargs["params"] == {"pageSize": 10}
        assert kwargs["timeout"] == 30
        headers = kwargs["headers"]
        assert headers["Authorization"] == "Bearer tok"
        assert headers[RequestHandler.REQUEST_ID_HEADER]
        assert headers["User-Agent"].startswith("vertexai-preview-python/")

    def test_request_uses_given_request_id(self, handler):
        with patch.object(handler._session, "request", return_value=_response(json_data={})) as mock_request:
            handler.request(method="POST", url=URL, auth=None, request_id="req-1", json_data={"a": 1})

        kwargs = mock_request.call_args.kwargs
        assert kwargs["headers"][RequestHandler.REQUEST_ID_HEADER] == "req-1"
        assert kwargs["json"] == {"a": 1}

    def test_empty_body_returns_empty_dict(self, handler):
        with patch.object(handler._session, "request", return_value=_response()):
            assert handler.request(method="DELETE", url=URL, auth=None) == {}

    def test_invalid_method(self, handler):
        with pytest.raises(ValidationError, match="Invalid HTTP method"):
            handler.request(method="FETCH", url=URL, auth=None)

    def test_invalid_url(self, handler):
        with pytest.raises(ValidationError, match="Invalid URL"):
            handler.request(method="GET", url="ftp://example.com", auth=None)

    @pytest.mark.parametrize(
        "status_code, error_class",
        [(400, ValidationError), (401, SDKError), (403, SDKError), (404, NotFoundError), (500, ApiError)],
    )
    def test_error_status_codes(self, handler, status_code, error_class):
        body = {"error": {"code": status_code, "message": "boom", "status": "X"}}
        with patch.object(handler._session, "request", return_value=_response(status_code, json_data=body)):
            with pytest.raises(error_class) as exc_info:
                handler.request(method="GET", url=URL, auth=None)

        assert "boom" in str(exc_info.value)
        assert exc_info.value.status_code == status_code

    def test_error_with_plain_text_body(self, handler):
        with patch.object(handler._session, "request", return_value=_response(502, text="Bad Gateway")):
            with pytest.raises(ApiError, match="API error 502: Bad Gateway"):
                handler.request(method="GET", url=URL, auth=None)

    def test_network_error_propagates(self, handler):
        with patch.object(handler._session, "request", side_effect=requests.ConnectionError("down")):
            with pytest.raises(requests.ConnectionError):
                handler.request(method="GET", url=URL, auth=None)

    def test_fetch_text(self, handler):
        response = _response(text="openapi: 3.0.0")
        with patch.object(handler._session, "get", return_value=response) as mock_get:
            text = handler.fetch_text("https://storage.googleapis.com/o", auth=None, params={"alt": "media"})

        assert text == "openapi: 3.0.0"
        assert mock_get.call_args.kwargs["params"] == {"alt": "media"}

    def test_fetch_text_not_found(self, handler):
        with patch.object(handler._session, "get", return_value=_response(404, json_data={"error": {"message": "gone"}})):
            with pytest.raises(NotFoundError, match="gone"):
                handler.fetch_text("https://storage.googleapis.com/o", auth=None)

    def test_extract_error_message_variants(self):
        assert RequestHandler._extract_error_message({"error": {"message": "m1"}}) == "m1"
        assert RequestHandler._extract_error_message({"error": "m2"}) == "m2"
        assert RequestHandler._extract_error_message({"message": "m3"}) == "m3"
        assert RequestHandler._extract_error_message({}) == "Unknown error"
        assert RequestHandler._extract_error_message(None) == "Unknown error"


class TestAsyncRequestHandler:
    @pytest.mark.asyncio
    async def test_request_requires_session(self):
        handler = AsyncRequestHandler(AsyncConfig(project="p"))
        with pytest.raises(RuntimeError, match="Session not initialized"):
            await handler.request(method="GET", url=URL, auth=None)

    @pytest.mark.asyncio
    async def test_ensure_session_and_close(self):
        config = AsyncConfig(project="p")
        handler = AsyncRequestHandler(config)
        await handler.ensure_session()
        session = handler._session
        assert isinstance(session, aiohttp.ClientSession)

        await handler.ensure_session()
        assert handler._session is session

        await handler.close()
        assert session.closed
        await config.close()

    def test_should_retry_exception(self):
        handler = AsyncRequestHandler(AsyncConfig(project="p"))
        assert handler._should_retry_exception(aiohttp.ClientConnectionError())
        assert not handler._should_retry_exception(aiohttp.ClientResponseError(request_info=MagicMock(), history=()))
        assert handler._should_retry_exception(ApiError("unavailable", 503))
        assert not handler._should_retry_exception(ApiError("bad", 418))
        assert not handler._should_retry_exception(ValueError("x"))

    @pytest.mark.asyncio
    async def test_handle_error_response(self):
        handler = AsyncRequestHandler(AsyncConfig(project="p"))
        response = MagicMock()
        response.status = 404
        response.text = AsyncMock(return_value='{"error": {"message": "no such extension"}}')
        response.json = AsyncMock(return_value={"error": {"message": "no such extension"}})

        with pytest.raises(NotFoundError, match="no such extension"):
            await handler._handle_error_response(response, "req-1")
