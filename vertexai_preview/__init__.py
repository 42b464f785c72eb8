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

"""
Vertex AI preview SDK
Convenient imports for all major SDK components.

Imports are lazy, so ``import vertexai_preview`` does not load aiohttp, jinja2 or the
Google auth stack until a component that needs them is first accessed.
"""

from typing import Any

from .version import version as __version__


__all__ = [
    # client
    "VertexAIPreviewClient",
    # config
    "Config",
    "AsyncConfig",
    # exceptions
    "SDKError",
    "ValidationError",
    "ApiError",
    "NotFoundError",
    "OperationError",
    # services
    "CachingClient",
    "ExampleStoreService",
    "ExampleStoreClient",
    "ExampleClient",
    "ExampleSearchClient",
    "TuningClient",
    "ExtensionClient",
    "AsyncExtensionClient",
    "PromptService",
    # planners
    "BuiltInPlanner",
    "PlanReActPlanner",
]

_import_map = {
    "VertexAIPreviewClient": ("vertexai_preview.client", "VertexAIPreviewClient"),
    "Config": ("vertexai_preview.config", "Config"),
    "AsyncConfig": ("vertexai_preview.config", "AsyncConfig"),
    "SDKError": ("vertexai_preview.exceptions", "SDKError"),
    "ValidationError": ("vertexai_preview.exceptions", "ValidationError"),
    "ApiError": ("vertexai_preview.exceptions", "ApiError"),
    "NotFoundError": ("vertexai_preview.exceptions", "NotFoundError"),
    "OperationError": ("vertexai_preview.exceptions", "OperationError"),
    "CachingClient": ("vertexai_preview.caching", "CachingClient"),
    "ExampleStoreService": ("vertexai_preview.examplestore", "ExampleStoreService"),
    "ExampleStoreClient": ("vertexai_preview.examplestore", "ExampleStoreClient"),
    "ExampleClient": ("vertexai_preview.examplestore", "ExampleClient"),
    "ExampleSearchClient": ("vertexai_preview.examplestore", "ExampleSearchClient"),
    "TuningClient": ("vertexai_preview.tuning", "TuningClient"),
    "ExtensionClient": ("vertexai_preview.extensions", "ExtensionClient"),
    "AsyncExtensionClient": ("vertexai_preview.extensions", "AsyncExtensionClient"),
    "PromptService": ("vertexai_preview.prompts", "PromptService"),
    "BuiltInPlanner": ("vertexai_preview.planners", "BuiltInPlanner"),
    "PlanReActPlanner": ("vertexai_preview.planners", "PlanReActPlanner"),
}


def __getattr__(name: str) -> Any:
    """Load the module providing ``name`` on first access and cache the attribute."""
    if name in _import_map:
        module_name, attr_name = _import_map[name]
        import importlib

        module = importlib.import_module(module_name)
        attr = getattr(module, attr_name)
        globals()[name] = attr
        return attr

    raise AttributeError(f"module 'vertexai_preview' has no attribute '{name}'")
