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

"""Planner interface."""

from abc import ABC, abstractmethod
from typing import Any, List, Optional

from vertexai_preview.models import Part
from .models import LlmRequest


class Planner(ABC):
    """
    Guides an agent's model calls.

    A planner may add an instruction to each request and may rewrite the parts of each
    response before the agent acts on them. The context arguments are whatever the
    calling agent framework provides; the planners in this package do not read them.
    """

    @abstractmethod
    def build_planning_instruction(self, readonly_context: Any, llm_request: LlmRequest) -> Optional[str]:
        """Return the system instruction to add to the request, or None for no instruction."""
        raise NotImplementedError

    @abstractmethod
    def process_planning_response(self, callback_context: Any, response_parts: List[Part]) -> Optional[List[Part]]:
        """Return the parts to keep from a model response, or None to keep the response unchanged."""
        raise NotImplementedError
