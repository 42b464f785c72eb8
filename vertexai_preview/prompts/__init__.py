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

from .errors import (
    FieldValidationError,
    FieldValidationErrors,
    InvalidRequestError,
    InvalidTemplateError,
    InvalidVariableError,
    MissingVariablesError,
    PromptAlreadyExistsError,
    PromptError,
    PromptErrorCode,
    PromptNotFoundError,
    QuotaExceededError,
    ServiceUnavailableError,
    UnauthorizedError,
    VersionConflictError,
    VersionNotFoundError,
)
from .metrics import MetricsCollector, PerformanceTracker
from .models import (
    ApplyTemplateRequest,
    ApplyTemplateResponse,
    BatchCreatePromptsRequest,
    BatchCreatePromptsResponse,
    CreatePromptRequest,
    CreateVersionRequest,
    DeletePromptRequest,
    ExportFormat,
    ExportPromptsRequest,
    GetPromptRequest,
    ImportPromptsRequest,
    ListPromptsRequest,
    ListVersionsRequest,
    Prompt,
    PromptStatus,
    PromptVersion,
    RestoreVersionRequest,
    SearchPromptsRequest,
    TemplateEngine,
    TemplateValidationResult,
    UpdatePromptRequest,
    ValidationMode,
)
from .service import PromptService
from .template import CompiledTemplate, TemplateAnalyzer, TemplateCompiler, TemplateProcessor
