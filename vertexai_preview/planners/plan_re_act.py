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

"""Plan-ReAct planner: plan first, then interleave actions and reasoning, then answer."""

from typing import Any, List, Optional

from vertexai_preview.models import Part
from .base import Planner
from .models import LlmRequest

PLANNING_TAG = "/*PLANNING*/"
REPLANNING_TAG = "/*REPLANNING*/"
REASONING_TAG = "/*REASONING*/"
ACTION_TAG = "/*ACTION*/"
FINAL_ANSWER_TAG = "/*FINAL_ANSWER*/"

THOUGHT_TAGS = (PLANNING_TAG, REASONING_TAG, ACTION_TAG, REPLANNING_TAG)

# ====================
# Instruction preambles
# ====================

HIGH_LEVEL_PREAMBLE = f"""
When answering the question, try to leverage the available tools to gather the information instead of your memorized knowledge.

Follow this process when answering the question: (1) first come up with a plan in natural language text format; (2) Then use tools to execute the plan and provide reasoning between tool code snippets to make a summary of current state and next step. Tool code snippets and reasoning should be interleaved with each other. (3) In the end, return one final answer.

Follow this format when answering the question: (1) The planning part should be under {PLANNING_TAG}. (2) The tool code snippets should be under {ACTION_TAG}, and the reasoning parts should be under {REASONING_TAG}. (3) The final answer part should be under {FINAL_ANSWER_TAG}.
"""

PLANNING_PREAMBLE = f"""
Below are the requirements for the planning:
The plan is made to answer the user query if following the plan. The plan is coherent and covers all aspects of information from user query, and only involves the tools that are accessible by the agent. The plan contains the decomposed steps as a numbered list where each step should use one or multiple available tools. By reading the plan, you can intuitively know which tools to trigger or what actions to take.
If the initial plan cannot be successfully executed, you should learn from previous execution results and revise your plan. The revised plan should be under {REPLANNING_TAG}. Then use tools to follow the new plan.
"""

REASONING_PREAMBLE = """
Below are the requirements for the reasoning:
The reasoning makes a summary of the current trajectory based on the user query and tool outputs. Based on the tool outputs and plan, the reasoning also comes up with instructions to the next steps, making the trajectory closer to the final answer.
"""

FINAL_ANSWER_PREAMBLE = """
Below are the requirements for the final answer:
The final answer should be precise and follow query formatting requirements. Some queries may not be answerable with the available tools and information. In those cases, inform the user why you cannot process their query and ask for more information.
"""

# Custom tools only, no Python libraries are offered to the model.
TOOL_CODE_PREAMBLE = """
Below are the requirements for the tool code:

**Custom Tools:** The available tools are described in the context and can be directly used.
- Code must be valid self-contained Python snippets with no imports and no references to tools or Python libraries that are not in the context.
- You cannot use any parameters or fields that are not explicitly defined in the APIs in the context.
- The code snippets should be readable, efficient, and directly relevant to the user query and reasoning steps.
- When using the tools, you should use the library name together with the function name, e.g., vertex_search.search().
- If Python libraries are not provided in the context, NEVER write your own code other than the function calls using the provided tools.
"""

USER_INPUT_PREAMBLE = """
VERY IMPORTANT instruction that you MUST follow in addition to the above instructions:

You should ask for clarification if you need more information to answer the question.
You should prefer using the information available in the context instead of repeated tool use.
"""

PREAMBLES = (
    HIGH_LEVEL_PREAMBLE,
    PLANNING_PREAMBLE,
    REASONING_PREAMBLE,
    FINAL_ANSWER_PREAMBLE,
    TOOL_CODE_PREAMBLE,
    USER_INPUT_PREAMBLE,
)


class PlanReActPlanner(Planner):
    """
    Makes the model write a plan before any action and tags its output.

    Works with any model that follows instructions; built-in thinking is not needed.
    Response processing marks planning, reasoning and action text as thoughts, splits
    the final answer from the reasoning before it, and stops at the first function call.
    """

    def build_planning_instruction(self, readonly_context: Any, llm_request: LlmRequest) -> Optional[str]:
        return "\n\n".join(PREAMBLES)

    def process_planning_response(self, callback_context: Any, response_parts: List[Part]) -> Optional[List[Part]]:
        if not response_parts:
            return []

        preserved: List[Part] = []
        first_call_index = None
        for i, part in enumerate(response_parts):
            if part.function_call is not None:
                if not part.function_call.name:
                    continue
                preserved.append(part)
                first_call_index = i
                break

            preserved.extend(self._split_text_part(part))

        # Only the function calls following the first one are kept.
        if first_call_index is not None:
            preserved.extend(
                part for part in response_parts[first_call_index + 1:] if part.function_call is not None
            )

        return preserved

    def _split_text_part(self, part: Part) -> List[Part]:
        text = part.text or ""
        if FINAL_ANSWER_TAG in text:
            idx = text.rindex(FINAL_ANSWER_TAG)
            reasoning, final_answer = text[:idx], text[idx:]
            parts = []
            if reasoning:
                parts.append(Part(text=reasoning, thought=True))
            parts.append(Part(text=final_answer))
            return parts

        if text.startswith(THOUGHT_TAGS):
            return [part.model_copy(update={"thought": True})]
        return [part]
