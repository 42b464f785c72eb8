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

from typing import Any, List, Optional

from vertexai_preview.models import Part
from .base import Planner
from .models import GenerateContentConfig, LlmRequest, ThinkingConfig


class BuiltInPlanner(Planner):
    """
    Planner relying on the model's built-in thinking.

    Args:
        thinking_config (ThinkingConfig, optional): Applied to each request. Models without
            thinking support reject requests carrying it.
    """

    def __init__(self, thinking_config: Optional[ThinkingConfig] = None):
        self.thinking_config = thinking_config

    def apply_thinking_config(self, llm_request: LlmRequest) -> None:
        """Set the thinking config on the request, creating the request config when it has none."""
        if self.thinking_config is None:
            return

        if llm_request.config is None:
            llm_request.config = GenerateContentConfig()
        llm_request.config.thinking_config = self.thinking_config

    def build_planning_instruction(self, readonly_context: Any, llm_request: LlmRequest) -> Optional[str]:
        return None

    def process_planning_response(self, callback_context: Any, response_parts: List[Part]) -> Optional[List[Part]]:
        return None
