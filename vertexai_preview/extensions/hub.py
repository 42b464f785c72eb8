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

"""Manifests of the Google provided extensions."""

from typing import Dict, List, Union

from .errors import PrebuiltExtensionError
from .models import (
    ApiSpec,
    AuthConfig,
    Extension,
    ExtensionManifest,
    PrebuiltExtensionType,
)

PUBLIC_SPEC_BUCKET = "gs://vertex-extension-public"

_HUB = {
    PrebuiltExtensionType.CODE_INTERPRETER: {
        "display_name": "Code Interpreter",
        "description": "This extension generates and executes code in the specified language",
        "manifest_name": "code_interpreter_tool",
        "manifest_description": "Google Code Interpreter Extension",
        "spec": f"{PUBLIC_SPEC_BUCKET}/code_interpreter.yaml",
    },
    PrebuiltExtensionType.VERTEX_AI_SEARCH: {
        "display_name": "Vertex AI Search",
        "description": "This extension searches from provided datastore",
        "manifest_name": "vertex_ai_search",
        "manifest_description": "Vertex AI Search Extension",
        "spec": f"{PUBLIC_SPEC_BUCKET}/vertex_ai_search.yaml",
    },
    PrebuiltExtensionType.WEBPAGE_BROWSER: {
        "display_name": "Webpage Browser",
        "description": "This extension fetches the content of a webpage",
        "manifest_name": "webpage_browser",
        "manifest_description": "Vertex Webpage Browser Extension",
        "spec": f"{PUBLIC_SPEC_BUCKET}/webpage_browser.yaml",
    },
}


def get_supported_prebuilt_extensions() -> List[PrebuiltExtensionType]:
    return list(_HUB)


def validate_prebuilt_extension_type(extension_type: Union[PrebuiltExtensionType, str]) -> PrebuiltExtensionType:
    """
    Raises:
        PrebuiltExtensionError: If the type is not a known prebuilt extension.
    """
    try:
        extension_type = PrebuiltExtensionType(extension_type)
    except ValueError as e:
        raise PrebuiltExtensionError(extension_type, "unsupported prebuilt extension type") from e
    return extension_type


def prebuilt_extension(extension_type: Union[PrebuiltExtensionType, str]) -> Extension:
    """Extension definition for a prebuilt type, without runtime config."""
    extension_type = validate_prebuilt_extension_type(extension_type)
    entry: Dict[str, str] = _HUB[extension_type]

    return Extension(
        display_name=entry["display_name"],
        description=entry["description"],
        manifest=ExtensionManifest(
            name=entry["manifest_name"],
            description=entry["manifest_description"],
            api_spec=ApiSpec(open_api_gcs_uri=entry["spec"]),
            auth_config=AuthConfig.google_service_account(),
        ),
    )
