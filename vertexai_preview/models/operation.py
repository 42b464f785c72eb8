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

from typing import Any, Dict, Optional

from pydantic import Field

from .base import VertexModel


class Status(VertexModel):
    """Error status attached to a finished long-running operation."""

    code: int = Field(default=0, description="google.rpc.Code value")
    message: str = Field(default="", description="Developer facing error message")
    details: Optional[list] = Field(None, description="Additional error details")


class Operation(VertexModel):
    """A google.longrunning.Operation as returned by the Vertex AI API."""

    name: str = Field(default="", description="Operation resource name")
    done: bool = Field(default=False, description="Whether the operation has finished")
    error: Optional[Status] = Field(None, description="Failure status, when the operation failed")
    metadata: Optional[Dict[str, Any]] = Field(None, description="Service specific metadata")
    response: Optional[Dict[str, Any]] = Field(None, description="Result of a successful operation")
