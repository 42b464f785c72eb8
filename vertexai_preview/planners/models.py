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

"""Request types passed to planners."""

from typing import List, Optional

from pydantic import Field

from vertexai_preview.models import Content, VertexModel


class ThinkingConfig(VertexModel):
    """Settings for models with built-in thinking."""

    include_thoughts: Optional[bool] = Field(None, alias="includeThoughts")
    thinking_budget: Optional[int] = Field(None, alias="thinkingBudget")


class GenerateContentConfig(VertexModel):
    system_instruction: Optional[Content] = Field(None, alias="systemInstruction")
    temperature: Optional[float] = None
    top_p: Optional[float] = Field(None, alias="topP")
    top_k: Optional[int] = Field(None, alias="topK")
    max_output_tokens: Optional[int] = Field(None, alias="maxOutputTokens")
    stop_sequences: Optional[List[str]] = Field(None, alias="stopSequences")
    thinking_config: Optional[ThinkingConfig] = Field(None, alias="thinkingConfig")


class LlmRequest(VertexModel):
    """A model request being assembled by an agent."""

    model: Optional[str] = None
    contents: List[Content] = Field(default_factory=list)
    config: Optional[GenerateContentConfig] = None
