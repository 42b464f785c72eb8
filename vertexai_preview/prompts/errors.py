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

"""Errors raised by the prompt management service."""

from enum import Enum
from typing import Any, Dict, List, Optional

from vertexai_preview.exceptions import SDKError


class PromptErrorCode(str, Enum):
    PROMPT_NOT_FOUND = "PROMPT_NOT_FOUND"
    PROMPT_ALREADY_EXISTS = "PROMPT_ALREADY_EXISTS"
    INVALID_TEMPLATE = "INVALID_TEMPLATE"
    VERSION_NOT_FOUND = "VERSION_NOT_FOUND"
    VERSION_CONFLICT = "VERSION_CONFLICT"
    MISSING_VARIABLES = "MISSING_VARIABLES"
    INVALID_VARIABLE = "INVALID_VARIABLE"
    UNAUTHORIZED = "UNAUTHORIZED"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    INVALID_REQUEST = "INVALID_REQUEST"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


class PromptError(SDKError):
    """
    Base error for prompt operations.

    Attributes:
        code (PromptErrorCode): Machine readable error code.
        details (dict): Extra context about the failure.
        prompt_id (str, optional): Prompt the error refers to.
        version_id (str, optional): Prompt version the error refers to.
    """

    code = None

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        prompt_id: Optional[str] = None,
        version_id: Optional[str] = None,
        code: Optional[PromptErrorCode] = None,
    ):
        super().__init__(message)
        if code is not None:
            self.code = code
        self.details = details or {}
        self.prompt_id = prompt_id
        self.version_id = version_id

    def __str__(self):
        text = f"[{self.code.value}] {self.message}" if self.code else self.message
        if self.prompt_id:
            text += f" (prompt_id: {self.prompt_id})"
        if self.version_id:
            text += f" (version_id: {self.version_id})"
        return text


class PromptNotFoundError(PromptError):
    code = PromptErrorCode.PROMPT_NOT_FOUND

    def __init__(self, prompt_id: str):
        super().__init__("prompt not found", prompt_id=prompt_id)


class PromptAlreadyExistsError(PromptError):
    code = PromptErrorCode.PROMPT_ALREADY_EXISTS

    def __init__(self, name: str):
        super().__init__(f"prompt with name '{name}' already exists", details={"name": name})


class InvalidTemplateError(PromptError):
    code = PromptErrorCode.INVALID_TEMPLATE

    def __init__(self, template: str, errors: List[str]):
        super().__init__("template validation failed", details={"template": template, "errors": list(errors)})
        self.errors = list(errors)


class VersionNotFoundError(PromptError):
    code = PromptErrorCode.VERSION_NOT_FOUND

    def __init__(self, prompt_id: str, version_id: str):
        super().__init__("prompt version not found", prompt_id=prompt_id, version_id=version_id)


class VersionConflictError(PromptError):
    code = PromptErrorCode.VERSION_CONFLICT

    def __init__(self, prompt_id: str, expected_version: str, actual_version: str):
        super().__init__(
            "version conflict detected",
            details={"expected_version": expected_version, "actual_version": actual_version},
            prompt_id=prompt_id,
        )


class MissingVariablesError(PromptError):
    """
    Raised when a template is applied without all of its variables.

    Attributes:
        missing (list): Names of the variables that were not supplied.
        response (ApplyTemplateResponse, optional): The partially rendered result.
    """

    code = PromptErrorCode.MISSING_VARIABLES

    def __init__(self, missing: List[str], response=None):
        super().__init__("required template variables are missing", details={"missing_variables": list(missing)})
        self.missing = list(missing)
        self.response = response


class InvalidVariableError(PromptError):
    code = PromptErrorCode.INVALID_VARIABLE

    def __init__(self, variable: str, reason: str):
        super().__init__(f"invalid variable '{variable}': {reason}", details={"variable": variable, "reason": reason})


class UnauthorizedError(PromptError):
    code = PromptErrorCode.UNAUTHORIZED

    def __init__(self, operation: str, resource: str):
        super().__init__(
            f"unauthorized to perform {operation} on {resource}",
            details={"operation": operation, "resource": resource},
        )


class QuotaExceededError(PromptError):
    code = PromptErrorCode.QUOTA_EXCEEDED

    def __init__(self, quota: str, limit: int):
        super().__init__(f"quota exceeded for {quota} (limit: {limit})", details={"quota": quota, "limit": limit})


class InvalidRequestError(PromptError):
    code = PromptErrorCode.INVALID_REQUEST

    def __init__(self, field: str, reason: str):
        super().__init__(f"invalid request: {field} - {reason}", details={"field": field, "reason": reason})


class ServiceUnavailableError(PromptError):
    code = PromptErrorCode.SERVICE_UNAVAILABLE

    def __init__(self, reason: str):
        super().__init__("service is temporarily unavailable", details={"reason": reason})


class FieldValidationError(SDKError):
    """A validation failure tied to a single request field."""

    def __init__(self, field: str, message: str, value: Any = None):
        super().__init__(f"validation error in field '{field}': {message}")
        self.field = field
        self.field_message = message
        self.value = value


class FieldValidationErrors(SDKError):
    """Collects several field validation failures and raises them together."""

    def __init__(self, errors: Optional[List[FieldValidationError]] = None):
        self.errors = list(errors or [])
        super().__init__(self._summary())

    def _summary(self) -> str:
        if not self.errors:
            return "no validation errors"
        if len(self.errors) == 1:
            return str(self.errors[0])
        return f"validation failed with {len(self.errors)} errors: {self.errors[0].field_message}"

    def add(self, field: str, message: str, value: Any = None):
        self.errors.append(FieldValidationError(field, message, value))
        self.message = self._summary()

    def has_errors(self) -> bool:
        return bool(self.errors)

    def fields(self) -> List[str]:
        return [e.field for e in self.errors]

    def messages(self) -> List[str]:
        return [e.field_message for e in self.errors]
