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

from .async_client import AsyncExtensionClient
from .client import SUPPORTED_REGIONS, ExtensionClient, build_operation_schemas, parse_api_spec
from .errors import (
    ExtensionAuthenticationError,
    ExtensionConfigurationError,
    ExtensionError,
    ExtensionExecutionError,
    ExtensionNotFoundError,
    ManifestValidationError,
    PrebuiltExtensionError,
    RegionNotSupportedError,
)
from .hub import get_supported_prebuilt_extensions, validate_prebuilt_extension_type
from .models import (
    ApiKeyConfig,
    ApiSpec,
    AuthConfig,
    AuthType,
    CodeInterpreterRuntimeConfig,
    ExecuteExtensionRequest,
    ExecuteExtensionResponse,
    Extension,
    ExtensionManifest,
    ExtensionOperation,
    ExtensionState,
    GoogleServiceAccountConfig,
    HttpBasicAuthConfig,
    ListExtensionsOptions,
    ListExtensionsResponse,
    OAuthConfig,
    PrebuiltExtensionType,
    QueryExtensionRequest,
    QueryExtensionResponse,
    RuntimeConfig,
    VertexAISearchRuntimeConfig,
)
