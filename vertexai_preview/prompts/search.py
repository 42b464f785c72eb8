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

"""Scoring helpers for prompt search."""

from typing import Dict, List, Optional, Tuple

from .models import Prompt

FIELD_WEIGHTS = {
    "name": 3.0,
    "display_name": 2.5,
    "description": 2.0,
    "template": 1.5,
    "tags": 2.0,
    "category": 1.8,
}
DEFAULT_SEARCH_FIELDS = ["name", "description", "template", "tags"]
HIGHLIGHT_CONTEXT = 50
TRIGRAM = 3


def field_text(prompt: Prompt, field: str) -> Optional[str]:
    """Searchable text of a prompt field, or None for unknown fields."""
    if field not in FIELD_WEIGHTS:
        return None
    if field == "tags":
        return " ".join(prompt.tags)
    return getattr(prompt, field) or ""


def fuzzy_match_score(text: str, query: str) -> float:
    """1.0 for a substring match, else the share of the query's trigrams found in the text."""
    if query in text:
        return 1.0
    if len(query) < TRIGRAM:
        return 0.0

    trigrams = len(query) - TRIGRAM + 1
    matches = sum(1 for i in range(trigrams) if query[i : i + TRIGRAM] in text)
    return matches / trigrams


def extract_highlight(text: str, query: str) -> str:
    """Snippet around the first match with ``...`` where the text was cut."""
    index = text.find(query)
    if index == -1:
        return ""

    start = max(index - HIGHLIGHT_CONTEXT, 0)
    end = min(index + len(query) + HIGHLIGHT_CONTEXT, len(text))
    snippet = text[start:end]
    if start > 0:
        snippet = "..." + snippet
    if end < len(text):
        snippet += "..."
    return snippet


def score_field_match(text: str, query: str, fuzzy: bool = False, case_sensitive: bool = False) -> Tuple[float, List[str]]:
    if not case_sensitive:
        text = text.lower()
        query = query.lower()

    if fuzzy:
        score = fuzzy_match_score(text, query)
    else:
        score = 1.0 if query in text else 0.0

    if score <= 0:
        return 0.0, []
    highlight = extract_highlight(text, query)
    return score, [highlight] if highlight else []


def calculate_search_score(
    prompt: Prompt,
    query: str,
    search_fields: Optional[List[str]] = None,
    fuzzy: bool = False,
    case_sensitive: bool = False,
) -> Tuple[float, Dict[str, List[str]], List[str]]:
    """
    Weighted relevance of a prompt for a query.

    Returns:
        tuple: ``(score, highlights by field, matched fields)``.
    """
    total = 0.0
    highlights = {}
    match_fields = []

    for field in search_fields or DEFAULT_SEARCH_FIELDS:
        text = field_text(prompt, field)
        if not text:
            continue

        score, field_highlights = score_field_match(text, query, fuzzy, case_sensitive)
        if score > 0:
            total += score * FIELD_WEIGHTS[field]
            match_fields.append(field)
            if field_highlights:
                highlights[field] = field_highlights

    return total, highlights, match_fields
