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

"""Content types shared by caching, extensions and planners."""

from typing import Any, Dict, List, Optional

from pydantic import Field

from .base import VertexModel


class Blob(VertexModel):
    """Inline binary data."""

    mime_type: str = Field(..., alias="mimeType")
    data: str = Field(..., description="Base64 encoded bytes")


class FileData(VertexModel):
    """Reference to data stored in Cloud Storage."""

    mime_type: str = Field(..., alias="mimeType")
    file_uri: str = Field(..., alias="fileUri")


class FunctionCall(VertexModel):
    """A function call predicted by the model."""

    name: str = Field(default="", description="Name of the function to call")
    args: Dict[str, Any] = Field(default_factory=dict, description="Function arguments")


class FunctionResponse(VertexModel):
    """Result of a function call, sent back to the model."""

    name: str = Field(..., description="Name of the function that was called")
    response: Dict[str, Any] = Field(default_factory=dict)


class Part(VertexModel):
    """
    A single piece of a multi-part message.

    Exactly one of text, inline_data, file_data, function_call or function_response
    is normally set. thought marks text produced as reasoning rather than answer.
    """

    text: Optional[str] = None
    thought: Optional[bool] = None
    inline_data: Optional[Blob] = Field(None, alias="inlineData")
    file_data: Optional[FileData] = Field(None, alias="fileData")
    function_call: Optional[FunctionCall] = Field(None, alias="functionCall")
    function_response: Optional[FunctionResponse] = Field(None, alias="functionResponse")

    @classmethod
    def from_text(cls, text: str) -> "Part":
        return cls(text=text)


class Content(VertexModel):
    """A message made of parts, authored by a role (user or model)."""

    role: Optional[str] = None
    parts: List[Part] = Field(default_factory=list)
