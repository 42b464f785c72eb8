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

"""Models for Vertex AI extensions."""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field, model_validator

from vertexai_preview.models import Content
from vertexai_preview.models.base import VertexModel, restore_enum_wrapper
from vertexai_preview.models.operation import Status


class ExtensionState(str, Enum):
    UNSPECIFIED = "EXTENSION_STATE_UNSPECIFIED"
    ACTIVE = "ACTIVE"
    CREATING = "CREATING"
    DELETING = "DELETING"
    ERROR = "ERROR"


class AuthType(str, Enum):
    """Authentication used by an extension when it calls its backing API."""

    UNSPECIFIED = "AUTH_TYPE_UNSPECIFIED"
    NO_AUTH = "NO_AUTH"
    GOOGLE_SERVICE_ACCOUNT_AUTH = "GOOGLE_SERVICE_ACCOUNT_AUTH"
    HTTP_BASIC_AUTH = "HTTP_BASIC_AUTH"
    OAUTH2_AUTH = "OAUTH"
    API_KEY_AUTH = "API_KEY_AUTH"


class PrebuiltExtensionType(str, Enum):
    CODE_INTERPRETER = "code_interpreter"
    VERTEX_AI_SEARCH = "vertex_ai_search"
    WEBPAGE_BROWSER = "webpage_browser"


class ApiSpec(VertexModel):
    """OpenAPI description of the extension, stored in Cloud Storage or inline as YAML."""

    open_api_gcs_uri: Optional[str] = Field(None, alias="openApiGcsUri")
    open_api_yaml: Optional[str] = Field(None, alias="openApiYaml")


class GoogleServiceAccountConfig(VertexModel):
    service_account: Optional[str] = Field(None, alias="serviceAccount")


class HttpBasicAuthConfig(VertexModel):
    credential_secret: str = Field(alias="credentialSecret")


class OAuthConfig(VertexModel):
    access_token: Optional[str] = Field(None, alias="accessToken")
    service_account: Optional[str] = Field(None, alias="serviceAccount")


class ApiKeyConfig(VertexModel):
    name: str
    api_key_secret: str = Field(alias="apiKeySecret")
    http_element_location: str = Field("HTTP_IN_HEADER", alias="httpElementLocation")


class AuthConfig(VertexModel):
    auth_type: AuthType = Field(AuthType.UNSPECIFIED, alias="authType")
    google_service_account_config: Optional[GoogleServiceAccountConfig] = Field(
        None, alias="googleServiceAccountConfig"
    )
    http_basic_auth_config: Optional[HttpBasicAuthConfig] = Field(None, alias="httpBasicAuthConfig")
    oauth_config: Optional[OAuthConfig] = Field(None, alias="oauthConfig")
    api_key_config: Optional[ApiKeyConfig] = Field(None, alias="apiKeyConfig")

    @model_validator(mode="before")
    @classmethod
    def _restore_enums(cls, values):
        return restore_enum_wrapper(cls, values)

    @classmethod
    def google_service_account(cls, service_account: Optional[str] = None) -> "AuthConfig":
        """Authenticate as a service account; the Vertex AI service agent when none is given."""
        return cls(
            auth_type=AuthType.GOOGLE_SERVICE_ACCOUNT_AUTH,
            google_service_account_config=GoogleServiceAccountConfig(service_account=service_account),
        )


class ExtensionManifest(VertexModel):
    name: str = ""
    description: Optional[str] = None
    api_spec: Optional[ApiSpec] = Field(None, alias="apiSpec")
    auth_config: Optional[AuthConfig] = Field(None, alias="authConfig")


class VertexAISearchRuntimeConfig(VertexModel):
    serving_config_name: Optional[str] = Field(None, alias="servingConfigName")
    engine_id: Optional[str] = Field(None, alias="engineId")


class CodeInterpreterRuntimeConfig(VertexModel):
    file_input_gcs_bucket: Optional[str] = Field(None, alias="fileInputGcsBucket")
    file_output_gcs_bucket: Optional[str] = Field(None, alias="fileOutputGcsBucket")


class RuntimeConfig(VertexModel):
    vertex_ai_search_runtime_config: Optional[VertexAISearchRuntimeConfig] = Field(
        None, alias="vertexAiSearchRuntimeConfig"
    )
    code_interpreter_runtime_config: Optional[CodeInterpreterRuntimeConfig] = Field(
        None, alias="codeInterpreterRuntimeConfig"
    )
    default_params: Optional[Dict[str, Any]] = Field(None, alias="defaultParams")


class ExtensionOperation(VertexModel):
    operation_id: str = Field("", alias="operationId")
    function_declaration: Optional[Dict[str, Any]] = Field(None, alias="functionDeclaration")


class Extension(VertexModel):
    """
    A registered extension.

    Attributes:
        name (str): Resource name, ``projects/{project}/locations/{location}/extensions/{id}``.
        manifest (ExtensionManifest): Name, OpenAPI spec and auth configuration.
        runtime_config (RuntimeConfig, optional): Settings for prebuilt extensions.
        extension_operations (list): Operations the API exposes, derived from the spec.
    """

    name: Optional[str] = None
    display_name: str = Field("", alias="displayName")
    description: Optional[str] = None
    manifest: Optional[ExtensionManifest] = None
    runtime_config: Optional[RuntimeConfig] = Field(None, alias="runtimeConfig")
    extension_operations: List[ExtensionOperation] = Field(default_factory=list, alias="extensionOperations")
    create_time: Optional[datetime] = Field(None, alias="createTime")
    update_time: Optional[datetime] = Field(None, alias="updateTime")
    etag: Optional[str] = None
    state: Optional[ExtensionState] = None
    error: Optional[Status] = None

    @model_validator(mode="before")
    @classmethod
    def _restore_enums(cls, values):
        return restore_enum_wrapper(cls, values)


class ListExtensionsOptions(VertexModel):
    page_size: Optional[int] = None
    page_token: Optional[str] = None
    filter: Optional[str] = None
    order_by: Optional[str] = None


class ListExtensionsResponse(VertexModel):
    extensions: List[Extension] = Field(default_factory=list)
    next_page_token: Optional[str] = Field(None, alias="nextPageToken")


class ExecuteExtensionRequest(VertexModel):
    operation_id: str = Field(alias="operationId")
    operation_params: Dict[str, Any] = Field(default_factory=dict, alias="operationParams")


class ExecuteExtensionResponse(VertexModel):
    """Result of an execute call. ``content`` is the raw operation output, usually JSON text."""

    content: Any = None

    def json_content(self) -> Any:
        """The content decoded from JSON, or unchanged when it is not a JSON string."""
        if not isinstance(self.content, str):
            return self.content
        try:
            return json.loads(self.content)
        except ValueError:
            return self.content


class QueryExtensionRequest(VertexModel):
    contents: List[Content] = Field(default_factory=list)


class QueryExtensionResponse(VertexModel):
    steps: List[Content] = Field(default_factory=list)
    failure_message: Optional[str] = Field(None, alias="failureMessage")
