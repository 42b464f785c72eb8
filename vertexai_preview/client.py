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

"""Single entry point bundling every Vertex AI preview service."""

from typing import Optional

from google.auth.credentials import Credentials

from vertexai_preview.auth import GoogleAuth
from vertexai_preview.caching import CachingClient
from vertexai_preview.config import Config
from vertexai_preview.examplestore import ExampleClient, ExampleSearchClient, ExampleStoreClient
from vertexai_preview.exceptions import ValidationError
from vertexai_preview.extensions import ExtensionClient
from vertexai_preview.prompts import PromptService
from vertexai_preview.request_handler import RequestHandler
from vertexai_preview.tuning import TuningClient


class VertexAIPreviewClient:
    """
    Client exposing caching, example stores, tuning, extensions and prompts.

    All services share one configuration, one authentication handler and one HTTP session.
    Services are built on first access, so a location that does not offer a service
    (extensions and example stores are us-central1 only) fails only when that service is used.

    Typical Usage:
        ```python
        from vertexai_preview import VertexAIPreviewClient

        with VertexAIPreviewClient(project="my-project", location="us-central1") as client:
            for cache in client.caching.list_caches().cached_contents:
                print(cache.name)
        ```

    Args:
        project (str): Google Cloud project ID.
        location (str): Vertex AI location.
        config (Config, optional): SDK configuration. Built from project and location when omitted.
        credentials (Credentials, optional): Google credentials. Application Default Credentials when omitted.
        token (str, optional): A pre-fetched OAuth2 access token.

    Raises:
        ValidationError: If project or location is empty, or the process-wide Config already
            targets another project or location.
    """

    def __init__(
        self,
        project: str,
        location: str,
        config: Optional[Config] = None,
        credentials: Optional[Credentials] = None,
        token: Optional[str] = None,
    ):
        if not project:
            raise ValidationError("project is required")
        if not location:
            raise ValidationError("location is required")

        self.project = project
        self.location = location
        self.config = config or Config(project=project, location=location)
        # Config is a process-wide singleton.
        if (self.config.project, self.config.location) != (project, location):
            raise ValidationError(
                f"config is bound to project {self.config.project!r} in {self.config.location!r}, "
                f"not project {project!r} in {location!r}"
            )
        self.auth = GoogleAuth(token=token, credentials=credentials)
        self._request_handler = RequestHandler(self.config)
        self._services = {}

        self.config.logger.info(f"Vertex AI preview client ready | project: {project}, location: {location}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _service(self, key: str, factory):
        if key not in self._services:
            service = factory(self.config, request_handler=self._request_handler)
            service.auth = self.auth
            self._services[key] = service
        return self._services[key]

    @property
    def caching(self) -> CachingClient:
        return self._service("caching", CachingClient)

    @property
    def example_stores(self) -> ExampleStoreClient:
        return self._service("example_stores", ExampleStoreClient)

    @property
    def examples(self) -> ExampleClient:
        return self._service("examples", ExampleClient)

    @property
    def example_search(self) -> ExampleSearchClient:
        return self._service("example_search", ExampleSearchClient)

    @property
    def tuning(self) -> TuningClient:
        return self._service("tuning", TuningClient)

    @property
    def extensions(self) -> ExtensionClient:
        return self._service("extensions", ExtensionClient)

    @property
    def prompts(self) -> PromptService:
        """In-process prompt registry. It keeps no HTTP session of its own."""
        if "prompts" not in self._services:
            self._services["prompts"] = PromptService(config=self.config)
        return self._services["prompts"]

    def close(self):
        """Close the shared HTTP session and release the prompt registry."""
        self.config.logger.info("Closing Vertex AI preview client")
        prompts = self._services.get("prompts")
        if prompts is not None:
            prompts.close()
        self._request_handler.close()
        self._services = {}
