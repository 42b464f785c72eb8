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

"""Async client for running Vertex AI extensions."""

from typing import Any, Dict, Optional, Union

from google.auth.credentials import Credentials

from vertexai_preview.async_request_handler import AsyncRequestHandler
from vertexai_preview.auth import AsyncGoogleAuth
from vertexai_preview.config import AsyncConfig
from vertexai_preview.exceptions import NotFoundError, SDKError
from vertexai_preview.request_handler import HttpMethod
from . import routes
from .client import BaseExtensionClient, ContentsType
from .errors import ExtensionNotFoundError
from .models import ExecuteExtensionResponse, Extension, QueryExtensionResponse


class AsyncExtensionClient(BaseExtensionClient):
    """
    Async client for executing and querying Vertex AI extensions.

    Registration stays on the synchronous ExtensionClient; this client covers the calls made
    while an agent is running.

    Typical Usage:
        ```python
        import asyncio
        from vertexai_preview import AsyncConfig
        from vertexai_preview.extensions import AsyncExtensionClient

        async def main():
            config = AsyncConfig(project="my-project", location="us-central1")
            async with AsyncExtensionClient(config=config, extension_name="projects/.../extensions/123") as client:
                result = await client.execute_extension("search", {"query": "vertex ai"})
                print(result.json_content())

        asyncio.run(main())
        ```

    Args:
        config (AsyncConfig, optional): Async SDK configuration. Must use the us-central1 location.
        credentials (Credentials, optional): Google credentials. Application Default Credentials when omitted.
        token (str, optional): A pre-fetched OAuth2 access token.
        extension_name (str, optional): Resource name of the extension to work with.

    Raises:
        ValueError: If config is not an AsyncConfig.
        RegionNotSupportedError: If the configured location is not us-central1.
    """

    def __init__(
        self,
        config: Optional[AsyncConfig] = None,
        credentials: Optional[Credentials] = None,
        token: Optional[str] = None,
        extension_name: Optional[str] = None,
    ):
        if config is None:
            config = AsyncConfig()
        elif not isinstance(config, AsyncConfig):
            raise ValueError("config must be an AsyncConfig object.")

        self.config = config
        self._check_region(config)
        self.auth = AsyncGoogleAuth(token=token, credentials=credentials)
        self._request_handler = AsyncRequestHandler(config)
        self.resource_name = extension_name

    async def __aenter__(self):
        await self._request_handler.ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        await self._request_handler.close()

    def _build_url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path

        return f"{self.config.base_url}/{path.lstrip('/')}"

    async def make_request(
        self,
        method: Union[HttpMethod, str],
        path: str,
        data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        request_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Send a request to a Vertex AI resource path. Query parameters set to None are dropped."""
        method = method.value if isinstance(method, HttpMethod) else method
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        await self._request_handler.ensure_session()
        return await self._request_handler.request(
            method=method,
            url=self._build_url(path),
            auth=self.auth,
            request_id=request_id,
            headers=headers,
            params=params or None,
            json_data=data,
        )

    async def get_extension(self, name: Optional[str] = None) -> Extension:
        """
        Raises:
            ExtensionNotFoundError: If the extension does not exist.
        """
        path = self._extension_path(name)
        try:
            res = await self.make_request(method=HttpMethod.GET, path=path)
        except NotFoundError as e:
            raise ExtensionNotFoundError(path) from e
        return Extension.model_validate(res)

    async def execute_extension(
        self, operation_id: str, operation_params: Optional[Dict[str, Any]] = None, name: Optional[str] = None
    ) -> ExecuteExtensionResponse:
        """
        Run one operation of an extension.

        Raises:
            ValidationError: If the extension name or operation ID is missing.
            ExtensionExecutionError: If the API answers with an error.
        """
        path = self._extension_path(name)
        body = self._execute_body(operation_id, operation_params)
        self.config.logger.debug(f"execute_extension called | name: {path}, operation_id: {operation_id}")
        try:
            res = await self.make_request(method=HttpMethod.POST, path=routes.execute_extension(path), data=body)
        except SDKError as e:
            raise self._execution_error(path, operation_id, e) from e
        return ExecuteExtensionResponse.model_validate(res)

    async def query_extension(self, contents: ContentsType, name: Optional[str] = None) -> QueryExtensionResponse:
        """
        Raises:
            ValidationError: For unsupported contents.
            ExtensionExecutionError: If the API answers with an error.
        """
        path = self._extension_path(name)
        body = self._query_body(contents)
        try:
            res = await self.make_request(method=HttpMethod.POST, path=routes.query_extension(path), data=body)
        except SDKError as e:
            raise self._execution_error(path, "query", e) from e
        return QueryExtensionResponse.model_validate(res)
