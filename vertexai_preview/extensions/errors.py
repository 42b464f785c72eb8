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

"""Errors raised by the extension clients."""

from typing import Any, Dict, List, Optional

from vertexai_preview.exceptions import SDKError


class ExtensionError(SDKError):
    """Base error for extension operations."""


class RegionNotSupportedError(ExtensionError):
    def __init__(self, region: str, supported: List[str]):
        super().__init__(
            f"extension API is not supported in region '{region}'. supported regions: {', '.join(supported)}"
        )
        self.region = region
        self.supported = list(supported)


class ExtensionNotFoundError(ExtensionError):
    def __init__(self, name: str):
        super().__init__(f"extension not found: {name}", status_code=404)
        self.name = name


class ManifestValidationError(ExtensionError):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(f"manifest validation failed: {message}")
        self.details = details or {}


class ExtensionExecutionError(ExtensionError):
    """
    Raised when an extension operation fails.

    Attributes:
        extension_name (str): Resource name of the extension.
        operation_id (str): The operation that was executed.
    """

    def __init__(self, extension_name: str, operation_id: str, message: str, status_code: Optional[int] = None):
        super().__init__(f"extension execution failed for {extension_name}.{operation_id}: {message}", status_code)
        self.extension_name = extension_name
        self.operation_id = operation_id


class PrebuiltExtensionError(ExtensionError):
    def __init__(self, extension_type, message: str):
        type_name = getattr(extension_type, "value", extension_type)
        super().__init__(f"prebuilt extension error for {type_name}: {message}")
        self.extension_type = extension_type


class ExtensionAuthenticationError(ExtensionError):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(f"authentication error: {message}")
        self.details = details or {}


class ExtensionConfigurationError(ExtensionError):
    def __init__(self, parameter: str, message: str):
        super().__init__(f"configuration error for {parameter}: {message}")
        self.parameter = parameter
