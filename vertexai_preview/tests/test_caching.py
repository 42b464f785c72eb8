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

from datetime import timedelta
from unittest.mock import Mock

import pytest

from vertexai_preview.caching import (
    CacheConfig,
    CachedContent,
    CacheState,
    CachingClient,
    ListCacheOptions,
    get_supported_models,
    is_supported_model,
)
from vertexai_preview.caching.models import format_duration, parse_duration
from vertexai_preview.config import Config
from vertexai_preview.exceptions import ValidationError
from vertexai_preview.models import Content, Part

PARENT = "projects/p/locations/us-central1"
BASE_URL = "https://us-central1-aiplatform.googleapis.com/v1beta1"


@pytest.fixture(autouse=True)
def reset_config_singleton():
    """Reset Config singleton before each test."""
    Config._instances = {}
    yield
    Config._instances = {}


@pytest.fixture
def client():
    """Create a caching client with a mock _request_handler."""
    client = CachingClient(config=Config(project="p"), token="tok")
    client._request_handler = Mock()
    return client


@pytest.fixture
def content():
    return Content(role="user", parts=[Part(text="A long document")])


# ============================================================================
# Model helpers
# ============================================================================


def test_supported_models():
    assert is_supported_model("gemini-2.0-flash-001")
    assert is_supported_model("gemini-2.0-pro-001")
    assert not is_supported_model("gemini-1.0-pro")
    assert get_supported_models() == ["gemini-2.0-flash-001", "gemini-2.0-pro-001"]


def test_duration_helpers():
    assert parse_duration("3600s") == timedelta(hours=1)
    assert parse_duration("1.5s") == timedelta(seconds=1.5)
    assert parse_duration(60) == timedelta(minutes=1)
    assert parse_duration(None) is None
    assert format_duration(timedelta(hours=1)) == "3600s"
    assert format_duration(timedelta(seconds=1.5)) == "1.5s"


def test_cached_content_from_api():
    cache = CachedContent.model_validate(
        {
            "name": f"{PARENT}/cachedContents/c1",
            "model": f"{PARENT}/publishers/google/models/gemini-2.0-flash-001",
            "ttl": "600s",
            "state": "ACTIVE",
            "usageMetadata": {"totalTokenCount": 42},
        }
    )
    assert cache.ttl == timedelta(minutes=10)
    assert cache.state == CacheState.ACTIVE
    assert cache.usage_metadata.total_token_count == 42


# ============================================================================
# Client Tests
# ============================================================================


def test_create_cache(client, content):
    client._request_handler.request.return_value = {"name": f"{PARENT}/cachedContents/c1", "displayName": "docs"}

    cache = client.create_cache(
        content, CacheConfig(model="gemini-2.0-flash-001", display_name="docs", ttl=timedelta(hours=1))
    )

    assert cache.name == f"{PARENT}/cachedContents/c1"
    call_args = client._request_handler.request.call_args
    assert call_args.kwargs["method"] == "POST"
    assert call_args.kwargs["url"] == f"{BASE_URL}/{PARENT}/cachedContents"
    body = call_args.kwargs["json_data"]
    assert body["model"] == f"{PARENT}/publishers/google/models/gemini-2.0-flash-001"
    assert body["displayName"] == "docs"
    assert body["ttl"] == "3600s"
    assert body["contents"] == [{"role": "user", "parts": [{"text": "A long document"}]}]


def test_create_cache_validation(client, content):
    with pytest.raises(ValidationError, match="content cannot be None"):
        client.create_cache(None, CacheConfig(model="gemini-2.0-flash-001"))
    with pytest.raises(ValidationError, match="config cannot be None"):
        client.create_cache(content, None)
    with pytest.raises(ValidationError, match="does not support content caching"):
        client.create_cache(content, CacheConfig(model="gemini-1.0-pro"))
    with pytest.raises(ValidationError, match="TTL must be greater than 0"):
        client.create_cache(content, CacheConfig(model="gemini-2.0-flash-001", ttl=timedelta(0)))
    client._request_handler.request.assert_not_called()


def test_create_cache_for_model_uses_default_ttl(client, content):
    client._request_handler.request.return_value = {"name": "c"}
    client.create_cache_for_model(content, "gemini-2.0-pro-001")

    body = client._request_handler.request.call_args.kwargs["json_data"]
    assert body["ttl"] == "86400s"
    assert body["displayName"] == "Cache for gemini-2.0-pro-001"


def test_get_cache(client):
    name = f"{PARENT}/cachedContents/c1"
    client._request_handler.request.return_value = {"name": name, "state": "EXPIRED"}

    cache = client.get_cache(name)

    assert cache.state == CacheState.EXPIRED
    call_args = client._request_handler.request.call_args
    assert call_args.kwargs["method"] == "GET"
    assert call_args.kwargs["url"] == f"{BASE_URL}/{name}"


def test_get_cache_requires_name(client):
    with pytest.raises(ValidationError, match="cache name is required"):
        client.get_cache("")


def test_list_caches(client):
    client._request_handler.request.return_value = {
        "cachedContents": [{"name": "c1"}, {"name": "c2"}],
        "nextPageToken": "next",
    }

    result = client.list_caches(ListCacheOptions(page_size=2))

    assert [c.name for c in result.cached_contents] == ["c1", "c2"]
    assert result.next_page_token == "next"
    assert client._request_handler.request.call_args.kwargs["params"] == {"pageSize": 2}


def test_list_caches_default_page_size(client):
    client._request_handler.request.return_value = {}
    result = client.list_caches()
    assert result.cached_contents == []
    assert client._request_handler.request.call_args.kwargs["params"] == {"pageSize": 50}


def test_update_cache(client):
    name = f"{PARENT}/cachedContents/c1"
    client._request_handler.request.return_value = {"name": name, "ttl": "7200s"}

    cache = client.update_cache(CachedContent(name=name, ttl=timedelta(hours=2)))

    assert cache.ttl == timedelta(hours=2)
    call_args = client._request_handler.request.call_args
    assert call_args.kwargs["method"] == "PATCH"
    assert call_args.kwargs["params"] == {"updateMask": "ttl"}
    assert call_args.kwargs["json_data"] == {"ttl": "7200s"}


def test_update_cache_requires_name(client):
    with pytest.raises(ValidationError, match="cached content name is required"):
        client.update_cache(CachedContent(ttl=timedelta(hours=1)))


def test_delete_cache(client):
    name = f"{PARENT}/cachedContents/c1"
    client._request_handler.request.return_value = {}
    client.delete_cache(name)

    call_args = client._request_handler.request.call_args
    assert call_args.kwargs["method"] == "DELETE"
    assert call_args.kwargs["url"] == f"{BASE_URL}/{name}"


def test_generate_cache_name(client):
    assert client.generate_cache_name("abc") == f"{PARENT}/cachedContents/abc"
