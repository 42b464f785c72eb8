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

"""Request, response and resource models for prompt management."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field, model_validator

from vertexai_preview.models.base import VertexModel, restore_enum_wrapper

DEFAULT_LIST_PAGE_SIZE = 50
MAX_LIST_PAGE_SIZE = 1000
MAX_VERSION_PAGE_SIZE = 100
DEFAULT_SEARCH_PAGE_SIZE = 20
MAX_SEARCH_PAGE_SIZE = 100


class ValidationMode(str, Enum):
    """How strictly declared and used template variables are compared."""

    STRICT = "strict"
    WARN = "warn"
    LOOSE = "loose"
    NONE = "none"


class TemplateEngine(str, Enum):
    """Template syntax understood by the template processor."""

    SIMPLE = "simple"
    ADVANCED = "advanced"
    JINJA = "jinja"


class PromptStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    ARCHIVED = "archived"
    DELETED = "deleted"


class ExportFormat(str, Enum):
    JSON = "json"
    YAML = "yaml"
    CSV = "csv"


class VariableDefinition(VertexModel):
    type: str = "string"
    description: Optional[str] = None
    default: Any = None
    format: Optional[str] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[str] = None
    enum: Optional[List[Any]] = None
    items: Optional["VariableDefinition"] = None
    properties: Optional[Dict[str, "VariableDefinition"]] = None


class VariableSchema(VertexModel):
    variables: Dict[str, VariableDefinition] = Field(default_factory=dict)
    required: List[str] = Field(default_factory=list)
    description: Optional[str] = None


class VersionUsage(VertexModel):
    total_calls: int = 0
    unique_users: int = 0
    last_used: Optional[datetime] = None
    average_latency: float = 0.0
    error_rate: float = 0.0
    tokens_generated: int = 0


class Prompt(VertexModel):
    """
    A stored prompt template together with its generation settings.

    Attributes:
        id (str): Service assigned identifier, e.g. ``prompt_3f2a...``.
        name (str): Unique, human chosen name.
        template (str): Template text with ``{variable}`` placeholders (or Jinja syntax).
        variables (list): Declared variable names. Detected from the template when omitted.
        version_id (str, optional): Active version.
        resource_name (str, optional): ``projects/{project}/locations/{location}/prompts/{id}``.
        etag (str, optional): Fingerprint of the stored content, used for optimistic concurrency.
    """

    id: Optional[str] = None
    name: str = ""
    display_name: Optional[str] = None
    description: Optional[str] = None
    template: str = ""
    variables: List[str] = Field(default_factory=list)
    category: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    version_id: Optional[str] = None
    version_name: Optional[str] = None
    generation_config: Optional[Dict[str, Any]] = None
    safety_settings: Optional[List[Dict[str, Any]]] = None
    system_instruction: Optional[str] = None
    resource_name: Optional[str] = None
    project_id: Optional[str] = None
    location: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    annotations: Dict[str, str] = Field(default_factory=dict)
    input_schema: Optional[VariableSchema] = None
    output_schema: Optional[Dict[str, Any]] = None
    is_public: bool = False
    permissions: List[str] = Field(default_factory=list)
    status: PromptStatus = PromptStatus.ACTIVE
    etag: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _restore_enums(cls, values):
        return restore_enum_wrapper(cls, values)


class PromptVersion(VertexModel):
    version_id: str
    version_name: Optional[str] = None
    prompt_id: str
    template: str = ""
    variables: List[str] = Field(default_factory=list)
    generation_config: Optional[Dict[str, Any]] = None
    safety_settings: Optional[List[Dict[str, Any]]] = None
    system_instruction: Optional[str] = None
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    created_by: Optional[str] = None
    is_active: bool = False
    changelog: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    parent_version_id: Optional[str] = None
    branch_name: Optional[str] = None
    usage: VersionUsage = Field(default_factory=VersionUsage)


class CreatePromptRequest(VertexModel):
    prompt: Optional[Prompt] = None
    create_version: bool = False
    version_name: Optional[str] = None
    validate_template: bool = False
    dry_run: bool = False


class UpdatePromptRequest(VertexModel):
    prompt: Optional[Prompt] = None
    create_new_version: bool = False
    version_name: Optional[str] = None
    changelog: Optional[str] = None
    validate_template: bool = False
    if_match_etag: Optional[str] = None


class GetPromptRequest(VertexModel):
    prompt_id: Optional[str] = None
    name: Optional[str] = None
    version_id: Optional[str] = None
    latest: bool = False
    include_versions: bool = False
    include_usage: bool = False


class DeletePromptRequest(VertexModel):
    prompt_id: Optional[str] = None
    name: Optional[str] = None
    force: bool = False
    delete_versions: bool = False
    if_match_etag: Optional[str] = None


class ListPromptsRequest(VertexModel):
    page_size: int = 0
    page_token: Optional[str] = None
    category: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    created_by: Optional[str] = None
    created_after: Optional[datetime] = None
    created_before: Optional[datetime] = None
    is_public: Optional[bool] = None
    query: Optional[str] = None
    search_fields: List[str] = Field(default_factory=list)
    order_by: Optional[str] = None
    order_desc: bool = False
    include_versions: bool = False


class ListPromptsResponse(VertexModel):
    prompts: List[Prompt] = Field(default_factory=list)
    next_page_token: Optional[str] = None
    total_size: int = 0


class ApplyTemplateRequest(VertexModel):
    prompt_id: Optional[str] = None
    name: Optional[str] = None
    version_id: Optional[str] = None
    template: Optional[str] = None
    variables: Optional[Dict[str, Any]] = None
    validate_variables: bool = False
    strict_mode: bool = False


class ApplyTemplateResponse(VertexModel):
    content: str = ""
    applied_variables: Dict[str, Any] = Field(default_factory=dict)
    missing_variables: List[str] = Field(default_factory=list)
    unused_variables: List[str] = Field(default_factory=list)
    validation_errors: List[str] = Field(default_factory=list)


class CreateVersionRequest(VertexModel):
    prompt_id: str = ""
    prompt: Optional[Prompt] = None
    version_name: Optional[str] = None
    changelog: Optional[str] = None
    branch_name: Optional[str] = None


class ListVersionsRequest(VertexModel):
    prompt_id: str = ""
    page_size: int = 0
    page_token: Optional[str] = None
    include_usage: bool = False
    created_after: Optional[datetime] = None
    created_before: Optional[datetime] = None
    branch_name: Optional[str] = None


class ListVersionsResponse(VertexModel):
    versions: List[PromptVersion] = Field(default_factory=list)
    next_page_token: Optional[str] = None
    total_size: int = 0


class RestoreVersionRequest(VertexModel):
    prompt_id: str = ""
    version_id: str = ""
    new_version_name: Optional[str] = None
    changelog: Optional[str] = None


class BatchOperationResult(VertexModel):
    index: int
    prompt: Optional[Prompt] = None
    error: Optional[str] = None
    success: bool = False


class BatchCreatePromptsRequest(VertexModel):
    prompts: List[Prompt] = Field(default_factory=list)
    create_versions: bool = False
    validate_all: bool = False
    continue_on_error: bool = False


class BatchCreatePromptsResponse(VertexModel):
    results: List[BatchOperationResult] = Field(default_factory=list)
    succeeded: int = 0
    failed: int = 0


class BatchTemplateResult(VertexModel):
    index: int
    response: Optional[ApplyTemplateResponse] = None
    error: Optional[str] = None
    success: bool = False


class ExportPromptsRequest(VertexModel):
    prompt_ids: List[str] = Field(default_factory=list)
    names: List[str] = Field(default_factory=list)
    category: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    include_versions: bool = False
    format: ExportFormat = ExportFormat.JSON

    @model_validator(mode="before")
    @classmethod
    def _restore_enums(cls, values):
        return restore_enum_wrapper(cls, values)


class ExportPromptsResponse(VertexModel):
    data: str = ""
    format: ExportFormat = ExportFormat.JSON
    prompts: List[Prompt] = Field(default_factory=list)
    count: int = 0
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ImportPromptsRequest(VertexModel):
    data: str = ""
    format: ExportFormat = ExportFormat.JSON
    overwrite: bool = False
    create_versions: bool = False
    validate_all: bool = False
    continue_on_error: bool = False

    @model_validator(mode="before")
    @classmethod
    def _restore_enums(cls, values):
        return restore_enum_wrapper(cls, values)


class SearchPromptsRequest(VertexModel):
    query: str = ""
    search_fields: List[str] = Field(default_factory=list)
    category: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    created_by: Optional[str] = None
    created_after: Optional[datetime] = None
    created_before: Optional[datetime] = None
    is_public: Optional[bool] = None
    fuzzy_search: bool = False
    case_sensitive: bool = False
    min_score: float = 0.0
    page_size: int = 0
    page_token: Optional[str] = None
    order_by: Optional[str] = None
    order_desc: bool = True


class SearchResult(VertexModel):
    prompt: Prompt
    score: float = 0.0
    highlights: Dict[str, List[str]] = Field(default_factory=dict)
    match_fields: List[str] = Field(default_factory=list)


class SearchPromptsResponse(VertexModel):
    results: List[SearchResult] = Field(default_factory=list)
    next_page_token: Optional[str] = None
    total_size: int = 0
    search_time: float = 0.0


class TemplateValidationResult(VertexModel):
    is_valid: bool = True
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    detected_variables: List[str] = Field(default_factory=list)
    undeclared_variables: List[str] = Field(default_factory=list)
    unused_variables: List[str] = Field(default_factory=list)


class TemplatePreview(VertexModel):
    template: str
    sample_variables: Dict[str, Any] = Field(default_factory=dict)
    preview_content: str = ""
    detected_variables: List[str] = Field(default_factory=list)
    validation_result: Optional[TemplateValidationResult] = None


class TemplateAnalysis(VertexModel):
    template_length: int = 0
    variable_count: int = 0
    variables: List[str] = Field(default_factory=list)
    complexity: float = 0.0
    readability: float = 0.0
    validation_result: Optional[TemplateValidationResult] = None
    recommendations: List[str] = Field(default_factory=list)


class PromptMetrics(VertexModel):
    prompt_id: str
    total_calls: int = 0
    unique_users: int = 0
    last_used: Optional[datetime] = None
    average_latency: float = 0.0
    error_rate: float = 0.0
    tokens_generated: int = 0
    version_metrics: Dict[str, VersionUsage] = Field(default_factory=dict)


class MetricsSnapshot(VertexModel):
    timestamp: datetime
    uptime: float
    metrics: Dict[str, Any] = Field(default_factory=dict)
