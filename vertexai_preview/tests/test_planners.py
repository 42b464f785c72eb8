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

import pytest

from vertexai_preview.models import Content, FunctionCall, Part
from vertexai_preview.planners import (
    ACTION_TAG,
    FINAL_ANSWER_TAG,
    PLANNING_TAG,
    REASONING_TAG,
    REPLANNING_TAG,
    BuiltInPlanner,
    GenerateContentConfig,
    LlmRequest,
    Planner,
    PlanReActPlanner,
    ThinkingConfig,
)


def _call(name, **args):
    return Part(function_call=FunctionCall(name=name, args=args))


def test_planner_is_abstract():
    with pytest.raises(TypeError):
        Planner()


# ============================================================================
# BuiltInPlanner
# ============================================================================


class TestBuiltInPlanner:
    def test_apply_thinking_config_creates_config(self):
        thinking = ThinkingConfig(include_thoughts=True, thinking_budget=1024)
        request = LlmRequest(model="gemini-2.5-flash", contents=[Content(role="user", parts=[Part(text="hi")])])

        BuiltInPlanner(thinking).apply_thinking_config(request)

        assert request.config.thinking_config is thinking
        assert request.to_body_dict()["config"]["thinkingConfig"] == {"includeThoughts": True, "thinkingBudget": 1024}

    def test_apply_thinking_config_keeps_existing_settings(self):
        request = LlmRequest(config=GenerateContentConfig(temperature=0.2))
        BuiltInPlanner(ThinkingConfig(thinking_budget=0)).apply_thinking_config(request)

        assert request.config.temperature == 0.2
        assert request.config.thinking_config.thinking_budget == 0

    def test_without_thinking_config(self):
        request = LlmRequest()
        BuiltInPlanner().apply_thinking_config(request)
        assert request.config is None

    def test_planning_hooks_are_noops(self):
        planner = BuiltInPlanner(ThinkingConfig(include_thoughts=True))
        assert planner.build_planning_instruction(None, LlmRequest()) is None
        assert planner.process_planning_response(None, [Part(text="x")]) is None


# ============================================================================
# PlanReActPlanner
# ============================================================================


class TestPlanReActPlanner:
    def test_planning_instruction(self):
        instruction = PlanReActPlanner().build_planning_instruction(None, LlmRequest())

        for tag in (PLANNING_TAG, REPLANNING_TAG, REASONING_TAG, ACTION_TAG, FINAL_ANSWER_TAG):
            assert tag in instruction
        assert "The revised plan should be under /*REPLANNING*/." in instruction
        assert "VERY IMPORTANT instruction" in instruction

    def test_empty_response(self):
        assert PlanReActPlanner().process_planning_response(None, []) == []

    def test_thought_tags_mark_parts_as_thoughts(self):
        parts = [
            Part(text=f"{PLANNING_TAG} 1. look up the weather"),
            Part(text=f"{REASONING_TAG} need the city"),
            Part(text="untagged text"),
        ]
        result = PlanReActPlanner().process_planning_response(None, parts)

        assert [p.thought for p in result] == [True, True, None]
        assert result[0].text == parts[0].text
        # Input parts are left untouched.
        assert parts[0].thought is None

    def test_final_answer_split(self):
        text = f"{REASONING_TAG} It is sunny.\n{FINAL_ANSWER_TAG} Sunny, 25C"
        result = PlanReActPlanner().process_planning_response(None, [Part(text=text)])

        assert len(result) == 2
        assert result[0].text == f"{REASONING_TAG} It is sunny.\n"
        assert result[0].thought is True
        assert result[1].text == f"{FINAL_ANSWER_TAG} Sunny, 25C"
        assert not result[1].thought

    def test_final_answer_only(self):
        result = PlanReActPlanner().process_planning_response(None, [Part(text=f"{FINAL_ANSWER_TAG} 42")])
        assert [(p.text, p.thought) for p in result] == [(f"{FINAL_ANSWER_TAG} 42", None)]

    def test_final_answer_uses_last_tag(self):
        text = f"{FINAL_ANSWER_TAG} draft {FINAL_ANSWER_TAG} final"
        result = PlanReActPlanner().process_planning_response(None, [Part(text=text)])
        assert result[0].text == f"{FINAL_ANSWER_TAG} draft "
        assert result[1].text == f"{FINAL_ANSWER_TAG} final"

    def test_stops_at_first_function_call(self):
        parts = [
            Part(text=f"{PLANNING_TAG} plan"),
            _call("get_weather", city="Paris"),
            Part(text="text after the call is dropped"),
            _call("get_time", city="Paris"),
        ]
        result = PlanReActPlanner().process_planning_response(None, parts)

        assert [p.function_call.name if p.function_call else p.text for p in result] == [
            f"{PLANNING_TAG} plan",
            "get_weather",
            "get_time",
        ]

    def test_function_call_first(self):
        parts = [_call("get_weather"), Part(text="dropped"), _call("get_time")]
        result = PlanReActPlanner().process_planning_response(None, parts)
        assert [p.function_call.name for p in result] == ["get_weather", "get_time"]

    def test_unnamed_function_calls_are_skipped(self):
        parts = [_call(""), Part(text=f"{ACTION_TAG} call tool"), _call("search")]
        result = PlanReActPlanner().process_planning_response(None, parts)

        assert result[0].text == f"{ACTION_TAG} call tool"
        assert result[0].thought is True
        assert result[1].function_call.name == "search"
        assert len(result) == 2
