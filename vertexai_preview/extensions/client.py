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

"""Client for registering, inspecting and running Vertex AI extensions."""

import json
from typing import Any, Dict, List, Optional, Union

import yaml
from google.auth.credentials import Credentials

from vertexai_preview.auth import GoogleAuth
from vertexai_preview.base_client import BaseClient
from vertexai_preview.config import BaseConfig, Config
from vertexai_preview.exceptions import NotFoundError, SDKError, ValidationError
from vertexai_preview.models import Content, Part
from vertexai_preview.request_handler import HttpMethod
from . import routes
from .errors import (
    ExtensionExecutionError,
    ExtensionNotFoundError,
    ManifestValidationError,
    PrebuiltExtensionError,
    RegionNotSupportedError,
)
from .hub import get_supported_prebuilt_extensions, prebuilt_extension, validate_prebuilt_extension_type
from .models import (
    CodeInterpreterRuntimeConfig,
    ExecuteExtensionRequest,
    ExecuteExtensionResponse,
    Extension,
    ExtensionManifest,
    ListExtensionsOptions,
    ListExtensionsResponse,
    PrebuiltExtensionType,
    QueryExtensionResponse,
    RuntimeConfig,
    VertexAISearchRuntimeConfig,
)

SUPPORTED_REGIONS = ["us-central1"]
HTTP_METHODS = {"get", "put", "post", "delete", "patch", "head", "options", "trace"}
DEFAULT_UPDATE_FIELDS = ("displayName", "description", "runtimeConfig")

ContentsType = Union[str, Part, Content, List[str], List[Part], List[Content], List[Dict[str, Any]]]


def validate_manifest(manifest: Optional[ExtensionManifest]):
    """
    Raises:
        ManifestValidationError: If the name, API spec or auth config is missing.
    """
    if manifest is None:
        raise ManifestValidationError("manifest is required")
    if not manifest.name:
        raise ManifestValidationError("manifest name is required")
    if manifest.api_spec is None or not (manifest.api_spec.open_api_gcs_uri or manifest.api_spec.open_api_yaml):
        raise ManifestValidationError("api spec is required", {"field": "api_spec"})
    if manifest.auth_config is None:
        raise ManifestValidationError("auth config is required", {"field": "auth_config"})


def parse_api_spec(text: str, source: str = "") -> Dict[str, Any]:
    """
    Parse an OpenAPI document.

    The format follows the file suffix of ``source``; without a known suffix YAML is tried first,
    then JSON.

    Raises:
        ValueError: If the document cannot be parsed into a mapping.
    """
    source = source.lower()
    if source.endswith(".json"):
        parsed = json.loads(text)
    elif source.endswith((".yaml", ".yml")):
        parsed = yaml.safe_load(text)
    else:
        try:
            parsed = yaml.safe_load(text)
        except yaml.YAMLError:
            parsed = json.loads(text)

    if not isinstance(parsed, dict):
        raise ValueError("OpenAPI spec must be a mapping")
    return parsed


def build_operation_schemas(spec: Dict[str, Any]) -> Dict[str, Any]:
    """Index spec operations by operationId (or ``METHOD_path``) plus ``schema_<name>`` components."""
    schemas = {}
    for path, methods in (spec.get("paths") or {}).items():
        for method, operation in (methods or {}).items():
            if method.lower() not in HTTP_METHODS or not isinstance(operation, dict):
                continue
            key = operation.get("operationId") or f"{method.upper()}_{path.strip('/').replace('/', '_')}"
            schemas[key] = operation

    for name, schema in ((spec.get("components") or {}).get("schemas") or {}).items():
        schemas[f"schema_{name}"] = schema
    return schemas


def to_contents(contents: ContentsType) -> List[Content]:
    """
    Normalize query input into a list of contents. Contents without a role are sent as the user.

    Raises:
        ValidationError: For unsupported input types.
    """
    if isinstance(contents, str):
        result = [Content(parts=[Part.from_text(contents)])]
    elif isinstance(contents, Part):
        result = [Content(parts=[contents])]
    elif isinstance(contents, Content):
        result = [contents.model_copy()]
    elif isinstance(contents, list) and contents:
        if all(isinstance(c, str) for c in contents):
            result = [Content(parts=[Part.from_text(c) for c in contents])]
        elif all(isinstance(c, Part) for c in contents):
            result = [Content(parts=list(contents))]
        elif all(isinstance(c, Content) for c in contents):
            result = [c.model_copy() for c in contents]
        elif all(isinstance(c, dict) for c in contents):
            result = [Content.model_validate(c) for c in contents]
        else:
            raise ValidationError("contents list must hold only strings, parts, contents or dicts")
    else:
        raise ValidationError(f"unsupported contents type: {type(contents).__name__}")

    for content in result:
        content.role = content.role or "user"
    return result


class BaseExtensionClient:
    """Shared request building and validation for the sync and async extension clients."""

    def _check_region(self, config: BaseConfig):
        if config.location not in SUPPORTED_REGIONS:
            raise RegionNotSupportedError(config.location, SUPPORTED_REGIONS)

    def _extension_path(self, name: Optional[str]) -> str:
        name = name or self.resource_name
        if not name:
            raise ValidationError("extension name is required")

        return name if name.startswith("projects/") else routes.extension(self.config.parent, name)

    def _execute_body(self, operation_id: str, operation_params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        if not operation_id:
            raise ValidationError("operation_id is required")

        request = ExecuteExtensionRequest(operation_id=operation_id, operation_params=operation_params or {})
        return request.to_body_dict()

    def _query_body(self, contents: ContentsType) -> Dict[str, Any]:
        return {"contents": [c.to_body_dict() for c in to_contents(contents)]}

    @staticmethod
    def _execution_error(path: str, operation_id: str, error: SDKError) -> SDKError:
        # Errors raised before a response arrived carry no status code and pass through unchanged.
        if error.status_code is None:
            return error
        return ExtensionExecutionError(path, operation_id, error.message, error.status_code)


class ExtensionClient(BaseExtensionClient, BaseClient):
    """
    Client for Vertex AI extensions.

    The client remembers the extension it created last (``resource_name``), so ``execute_extension``,
    ``query_extension``, ``api_spec`` and ``operation_schemas`` can be called without a name.
    Extensions are only available in us-central1.

    Typical Usage:
        ```python
        from vertexai_preview import Config
        from vertexai_preview.extensions import ExtensionClient

        client = ExtensionClient(config=Config(project="my-project", location="us-central1"))
        client.create_code_interpreter_extension()
        result = client.execute_extension("generate_and_execute", {"query": "find the max of [1, 5, 3]"})
        print(result.json_content())
        ```

    Args:
        config (Config, optional): SDK configuration. Must use the us-central1 location.
        credentials (Credentials, optional): Google credentials. Application Default Credentials when omitted.
        token (str, optional): A pre-fetched OAuth2 access token.
        request_handler (RequestHandler, optional): Custom request handler.
        extension_name (str, optional): Resource name of an existing extension to work with.

    Raises:
        RegionNotSupportedError: If the configured location is not us-central1.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        credentials: Optional[Credentials] = None,
        token: Optional[str] = None,
        request_handler=None,
        extension_name: Optional[str] = None,
    ):
        super().__init__(GoogleAuth(token=token, credentials=credentials), config, request_handler)
        self._check_region(self.config)
        self.resource_name = extension_name
        self._reset_spec_cache()

    def _reset_spec_cache(self):
        self._api_spec: Optional[Dict[str, Any]] = None
        self._operation_schemas: Optional[Dict[str, Any]] = None

    def _use_extension(self, name: Optional[str]):
        self.resource_name = name
        self._reset_spec_cache()

    def create_extension(self, extension: Extension) -> Extension:
        """
        Register an extension from its manifest and wait until it is ready.

        Args:
            extension (Extension): Display name, description, manifest and optional runtime config.

        Returns:
            Extension: The registered extension. It becomes the client's current extension.

        Raises:
            ManifestValidationError: If the manifest lacks a name, API spec or auth config.
            OperationError: If registration fails.
        """
        if extension is None:
            raise ValidationError("extension is required")
        if not extension.display_name:
            raise ValidationError("extension display name is required")
        validate_manifest(extension.manifest)

        self.config.logger.debug(
            f"create_extension called | display_name: {extension.display_name}, manifest: {extension.manifest.name}"
        )
        body = extension.model_dump(
            by_alias=True,
            exclude_none=True,
            mode="json",
            include={"display_name", "description", "manifest", "runtime_config"},
        )
        operation = self.make_request(method=HttpMethod.POST, path=routes.import_extension(self.parent), data=body)
        created = Extension.model_validate(self.wait_for_operation(operation))

        self._use_extension(created.name)
        self.config.logger.info(f"Created extension: {created.name}")
        return created

    def get_extension(self, name: Optional[str] = None) -> Extension:
        """
        Raises:
            ExtensionNotFoundError: If the extension does not exist.
        """
        path = self._extension_path(name)
        try:
            res = self.make_request(method=HttpMethod.GET, path=path)
        except NotFoundError as e:
            raise ExtensionNotFoundError(path) from e
        return Extension.model_validate(res)

    def list_extensions(self, options: Optional[ListExtensionsOptions] = None) -> ListExtensionsResponse:
        options = options or ListExtensionsOptions()
        res = self.make_request(
            method=HttpMethod.GET,
            path=routes.extensions(self.parent),
            params={
                "pageSize": options.page_size,
                "pageToken": options.page_token,
                "filter": options.filter,
                "orderBy": options.order_by,
            },
        )
        return ListExtensionsResponse.model_validate(res)

    def delete_extension(self, name: Optional[str] = None) -> None:
        """Delete an extension and wait for the deletion to finish."""
        path = self._extension_path(name)
        try:
            operation = self.make_request(method=HttpMethod.DELETE, path=path)
        except NotFoundError as e:
            raise ExtensionNotFoundError(path) from e
        self.wait_for_operation(operation)

        if path == self.resource_name:
            self._use_extension(None)
        self.config.logger.info(f"Deleted extension: {path}")

    def update_extension(self, extension: Extension, update_mask: Optional[List[str]] = None) -> Extension:
        """
        Update display name, description or runtime config.

        Args:
            extension (Extension): New values. ``name`` selects the extension, defaulting to the current one.
            update_mask (list, optional): API field names to update. Defaults to those set on ``extension``
                among displayName, description and runtimeConfig.
        """
        path = self._extension_path(extension.name)
        body = extension.model_dump(
            by_alias=True,
            exclude_none=True,
            mode="json",
            include={"display_name", "description", "runtime_config"},
        )
        mask = update_mask or [f for f in DEFAULT_UPDATE_FIELDS if body.get(f)]
        if not mask:
            raise ValidationError("nothing to update")

        res = self.make_request(
            method=HttpMethod.PATCH, path=path, data=body, params={"updateMask": ",".join(mask)}
        )
        if path == self.resource_name:
            self._reset_spec_cache()
        return Extension.model_validate(res)

    def api_spec(self, name: Optional[str] = None) -> Dict[str, Any]:
        """
        The extension's OpenAPI document as a dict.

        Specs stored in Cloud Storage are downloaded with the client credentials. The spec of the
        current extension is cached. An empty dict is returned when there is no extension to read
        or the document cannot be parsed.
        """
        current = name is None or name == self.resource_name
        if current and self._api_spec is not None:
            return self._api_spec
        if name is None and not self.resource_name:
            self.config.logger.warning("api_spec called without a loaded extension")
            return {}

        extension = self.get_extension(name)
        spec = extension.manifest.api_spec if extension.manifest else None
        parsed = {}
        try:
            if spec is not None and spec.open_api_gcs_uri:
                text = self.fetch_text(routes.gcs_object(spec.open_api_gcs_uri), params={"alt": "media"})
                parsed = parse_api_spec(text, spec.open_api_gcs_uri)
            elif spec is not None and spec.open_api_yaml:
                parsed = parse_api_spec(spec.open_api_yaml, ".yaml")
        except (ValueError, yaml.YAMLError) as e:
            self.config.logger.warning(f"Failed to parse OpenAPI spec of {extension.name}: {e}")
            parsed = {}

        if current:
            self._api_spec = parsed
        return parsed

    def operation_schemas(self, name: Optional[str] = None) -> Dict[str, Any]:
        """Operations of the extension keyed by operation ID, plus ``schema_<name>`` component schemas."""
        current = name is None or name == self.resource_name
        if current and self._operation_schemas is not None:
            return self._operation_schemas

        schemas = build_operation_schemas(self.api_spec(name))
        if current:
            self._operation_schemas = schemas
        return schemas

    def execute_extension(
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
            res = self.make_request(method=HttpMethod.POST, path=routes.execute_extension(path), data=body)
        except SDKError as e:
            raise self._execution_error(path, operation_id, e) from e
        return ExecuteExtensionResponse.model_validate(res)

    def query_extension(self, contents: ContentsType, name: Optional[str] = None) -> QueryExtensionResponse:
        """
        Ask an extension in natural language; the service plans and runs the operations.

        Args:
            contents: A string, a Part, a Content, or a list of strings, parts, contents or dicts.

        Raises:
            ValidationError: For unsupported contents.
            ExtensionExecutionError: If the API answers with an error.
        """
        path = self._extension_path(name)
        body = self._query_body(contents)
        try:
            res = self.make_request(method=HttpMethod.POST, path=routes.query_extension(path), data=body)
        except SDKError as e:
            raise self._execution_error(path, "query", e) from e
        return QueryExtensionResponse.model_validate(res)

    def create_from_hub(
        self,
        extension_type: Union[PrebuiltExtensionType, str],
        runtime_config: Optional[RuntimeConfig] = None,
    ) -> Extension:
        """
        Register one of the Google provided extensions.

        Raises:
            PrebuiltExtensionError: For an unknown type, or a Vertex AI Search extension without a
                serving config.
        """
        extension_type = validate_prebuilt_extension_type(extension_type)
        extension = prebuilt_extension(extension_type)

        if extension_type == PrebuiltExtensionType.CODE_INTERPRETER:
            runtime_config = runtime_config or RuntimeConfig(
                code_interpreter_runtime_config=CodeInterpreterRuntimeConfig()
            )
        elif extension_type == PrebuiltExtensionType.VERTEX_AI_SEARCH:
            search = runtime_config.vertex_ai_search_runtime_config if runtime_config else None
            if search is None or not search.serving_config_name:
                raise PrebuiltExtensionError(
                    extension_type, "runtime_config.vertex_ai_search_runtime_config.serving_config_name is required"
                )

        extension.runtime_config = runtime_config
        return self.create_extension(extension)

    def create_code_interpreter_extension(self, runtime_config: Optional[RuntimeConfig] = None) -> Extension:
        return self.create_from_hub(PrebuiltExtensionType.CODE_INTERPRETER, runtime_config)

    def create_vertex_ai_search_extension(self, serving_config_name: str, engine_id: Optional[str] = None) -> Extension:
        """
        Raises:
            PrebuiltExtensionError: If the serving config name is empty.
        """
        if not serving_config_name:
            raise PrebuiltExtensionError(
                PrebuiltExtensionType.VERTEX_AI_SEARCH,
                "serving_config_name is required for Vertex AI Search extension",
            )

        runtime_config = RuntimeConfig(
            vertex_ai_search_runtime_config=VertexAISearchRuntimeConfig(
                serving_config_name=serving_config_name, engine_id=engine_id
            )
        )
        return self.create_from_hub(PrebuiltExtensionType.VERTEX_AI_SEARCH, runtime_config)

    @staticmethod
    def get_supported_prebuilt_extensions() -> List[PrebuiltExtensionType]:
        return get_supported_prebuilt_extensions()

    @staticmethod
    def validate_prebuilt_extension_type(extension_type) -> PrebuiltExtensionType:
        return validate_prebuilt_extension_type(extension_type)
