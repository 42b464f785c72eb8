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

import pytest
from google.auth import exceptions as google_auth_exceptions

from vertexai_preview.auth import AsyncGoogleAuth, GoogleAuth
from vertexai_preview.exceptions import SDKError


def _credentials(valid=True, token="cred-token", quota_project_id=None):
    credentials = MagicMock()
    credentials.valid = valid
    credentials.token = token
    credentials.quota_project_id = quota_project_id
    return credentials


def test_static_token():
    auth = GoogleAuth(token="static")
    assert auth.get_token() == "static"
    assert auth.auth_headers() == {"Authorization": "Bearer static"}


@pytest.mark.parametrize("token", ["", "   ", 123])
def test_invalid_token(token):
    with pytest.raises(ValueError, match="Invalid access token format"):
        GoogleAuth(token=token)


def test_valid_credentials_are_not_refreshed():
    credentials = _credentials()
    auth = GoogleAuth(credentials=credentials)
    assert auth.get_token() == "cred-token"
    credentials.refresh.assert_not_called()


def test_expired_credentials_are_refreshed():
    credentials = _credentials(valid=False)
    auth = GoogleAuth(credentials=credentials)
    assert auth.get_token() == "cred-token"
    credentials.refresh.assert_called_once()


def test_refresh_error_becomes_sdk_error():
    credentials = _credentials(valid=False)
    credentials.refresh.side_effect = google_auth_exceptions.RefreshError("expired")
    auth = GoogleAuth(credentials=credentials)
    with pytest.raises(SDKError, match="Authentication error"):
        auth.get_token()


def test_default_credentials_loaded_lazily():
    credentials = _credentials()
    with patch("google.auth.default", return_value=(credentials, "proj")) as mock_default:
        auth = GoogleAuth()
        mock_default.assert_not_called()
        assert auth.get_token() == "cred-token"

    mock_default.assert_called_once_with(scopes=["https://www.googleapis.com/auth/cloud-platform"])


def test_missing_default_credentials():
    with patch("google.auth.default", side_effect=google_auth_exceptions.DefaultCredentialsError("none")):
        auth = GoogleAuth()
        with pytest.raises(SDKError, match="Authentication error"):
            auth.get_token()


def test_quota_project_header():
    auth = GoogleAuth(credentials=_credentials(quota_project_id="billing-project"))
    headers = auth.auth_headers()
    assert headers["Authorization"] == "Bearer cred-token"
    assert headers["x-goog-user-project"] == "billing-project"


def test_requests_auth_adds_headers():
    request = MagicMock()
    request.headers = {}
    result = GoogleAuth(token="tok")(request)
    assert result is request
    assert request.headers["Authorization"] == "Bearer tok"


@pytest.mark.asyncio
async def test_async_middleware_adds_headers():
    request = MagicMock()
    request.headers = {}
    handler = AsyncMock(return_value="response")

    result = await AsyncGoogleAuth(token="tok")(request, handler)

    assert result == "response"
    assert request.headers["Authorization"] == "Bearer tok"
    handler.assert_awaited_once_with(request)
