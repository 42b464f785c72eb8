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

"""Client for Vertex AI context caching."""

from datetime import timedelta
from typing import List, Optional

from google.auth.credentials import Credentials

from vertexai_preview.auth import GoogleAuth
from vertexai_preview.base_client import BaseClient
from vertexai_preview.config import Config
from vertexai_preview.exceptions import ValidationError
from vertexai_preview.models.content import Content
from vertexai_preview.request_handler import HttpMethod
from .models import (
    DEFAULT_CACHE_TTL,
    CacheConfig,
    CachedContent,
    ListCacheOptions,
    ListCacheResponse,
    is_supported_model,
)
from .routes import cached_content, cached_contents, publisher_model


class CachingClient(BaseClient):
    """
    Client for creating and managing cached contents.

    Cached contents let large, reusable context (documents, system instructions,
    tool declarations) be stored once and referenced by later generation requests.

    Typical Usage:
        ```python
        from datetime import timedelta
        from vertexai_preview import Config
        from vertexai_preview.caching import CachingClient, CacheConfig
        from vertexai_preview.models import Content, Part

        client = CachingClient(config=Config(project="my-project"))
        cache = client.create_cache(
            Content(role="user", parts=[Part(text="A long document...")]),
            CacheConfig(model="gemini-2.0-flash-001", ttl=timedelta(hours=1)),
        )
        print(cache.name)
        ```
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        credentials: Optional[Credentials] = None,
        token: Optional[str] = None,
        request_handler=None,
    ):
        """
        Initialize a CachingClient instance.

        Args:
            config (Config, optional): SDK configuration. A default Config is used when omitted.
            credentials (Credentials, optional): Google credentials. Application Default Credentials are used otherwise.
            token (str, optional): Static OAuth2 access token.
            request_handler: Optional custom request handler for API requests.
        """
        super().__init__(GoogleAuth(token=token, credentials=credentials), config, request_handler)

    def create_cache(self, content: Content, config: CacheConfig) -> CachedContent:
        """
        Create a cached content entry.

        Args:
            content (Content): Content to cache.
            config (CacheConfig): Model, TTL and optional instruction and tools.

        Returns:
            CachedContent: The created cache.

        Raises:
            ValidationError: If content or config is missing, the model does not support
                caching, or the TTL is not positive.
            ApiError: If the API returns an error response.
        """
        if content is None:
            raise ValidationError("content cannot be None")
        if config is None:
            raise ValidationError("config cannot be None")
        if not is_supported_model(config.model):
            raise ValidationError(f"model {config.model} does not support content caching")
        if config.ttl is None or config.ttl.total_seconds() <= 0:
            raise ValidationError("TTL must be greater than 0")

        self.config.logger.debug(f"create_cache called | model: {config.model}, ttl: {config.ttl}")
        body = CachedContent(
            model=publisher_model(self.parent, config.model),
            display_name=config.display_name,
            system_instruction=config.system_instruction,
            contents=[content],
            tools=config.tools,
            tool_config=config.tool_config,
            ttl=config.ttl,
        )
        res = self.make_request(
            method=HttpMethod.POST,
            path=cached_contents(self.parent),
            data=body.to_body_dict(),
        )
        result = CachedContent.model_validate(res)
        self.config.logger.info(f"Created cached content: {result.name}")
        return result

    def get_cache(self, name: str) -> CachedContent:
        """
        Get a cached content entry by resource name.

        Raises:
            ValidationError: If the name is empty.
            NotFoundError: If the cache does not exist.
        """
        if not name:
            raise ValidationError("cache name is required")

        res = self.make_request(method=HttpMethod.GET, path=name)
        result = CachedContent.model_validate(res)
        self.config.logger.debug(f"Retrieved cached content: {result.name}")
        return result

    def list_caches(self, options: Optional[ListCacheOptions] = None) -> ListCacheResponse:
        """
        List cached contents in the configured location.

        Args:
            options (ListCacheOptions, optional): Page size (default 50) and page token.

        Returns:
            ListCacheResponse: One page of cached contents and the next page token.
        """
        options = options or ListCacheOptions()
        res = self.make_request(
            method=HttpMethod.GET,
            path=cached_contents(self.parent),
            params={"pageSize": options.page_size, "pageToken": options.page_token},
        )
        result = ListCacheResponse.model_validate(res)
        self.config.logger.debug(f"Listed {len(result.cached_contents)} cached contents")
        return result

    def update_cache(self, cached_content: CachedContent, update_mask: Optional[List[str]] = None) -> CachedContent:
        """
        Update a cached content entry. Only the expiration (ttl or expire_time) is mutable.

        Args:
            cached_content (CachedContent): The cache with its name and new values.
            update_mask (list[str], optional): Fields to update. Defaults to ``["ttl"]``.

        Raises:
            ValidationError: If the cache or its name is missing.
        """
        if cached_content is None:
            raise ValidationError("cached content cannot be None")
        if not cached_content.name:
            raise ValidationError("cached content name is required")

        mask = ",".join(update_mask) if update_mask else "ttl"
        res = self.make_request(
            method=HttpMethod.PATCH,
            path=cached_content.name,
            data=cached_content.model_copy(update={"name": None}).to_body_dict(),
            params={"updateMask": mask},
        )
        result = CachedContent.model_validate(res)
        self.config.logger.info(f"Updated cached content: {result.name}")
        return result

    def delete_cache(self, name: str) -> None:
        """
        Delete a cached content entry.

        Raises:
            ValidationError: If the name is empty.
        """
        if not name:
            raise ValidationError("cache name is required")

        self.make_request(method=HttpMethod.DELETE, path=name)
        self.config.logger.info(f"Deleted cached content: {name}")

    def create_cache_with_ttl(
        self, content: Content, model: str, display_name: str, ttl: timedelta
    ) -> CachedContent:
        """Create a cache with an explicit display name and TTL."""
        return self.create_cache(content, CacheConfig(model=model, display_name=display_name, ttl=ttl))

    def create_cache_for_model(self, content: Content, model: str) -> CachedContent:
        """Create a cache for a model with a 24 hour TTL."""
        return self.create_cache(
            content,
            CacheConfig(model=model, display_name=f"Cache for {model}", ttl=DEFAULT_CACHE_TTL),
        )

    def generate_cache_name(self, cache_id: str) -> str:
        """Full resource name of a cache in the configured location."""
        return cached_content(self.parent, cache_id)
