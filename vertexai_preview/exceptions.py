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

"""Exception hierarchy shared by every Vertex AI preview client."""

from typing import Optional


class SDKError(Exception):
    """
    Base exception for all SDK errors.

    Attributes:
        message (str): Human readable description of the failure.
        status_code (int, optional): HTTP status code when the error came from the API.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self):
        return self.message


class ValidationError(SDKError):
    """Raised when request input fails client-side validation or the API answers 400."""


class ApiError(SDKError):
    """
    Raised when the Vertex AI API returns an error response.

    Attributes:
        request_id (str, optional): The request ID sent with the failing call.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, request_id: Optional[str] = None):
        super().__init__(message, status_code)
        self.request_id = request_id


class NotFoundError(ApiError):
    """Raised when the requested resource does not exist (HTTP 404)."""


class OperationError(SDKError):
    """
    Raised when a long-running operation fails or does not finish in time.

    Attributes:
        operation_name (str, optional): Resource name of the operation.
    """

    def __init__(self, message: str, operation_name: Optional[str] = None):
        super().__init__(message)
        self.operation_name = operation_name
