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

"""Similarity search over example stores, with client-side filtering and ranking."""

from typing import Any, Dict, List, Optional

from vertexai_preview.exceptions import ValidationError
from vertexai_preview.request_handler import HttpMethod
from .base import ExampleStoreBaseClient
from .models import (
    DEFAULT_SIMILARITY_THRESHOLD,
    Example,
    SearchQuery,
    SearchResponse,
    SearchResult,
    StoredExample,
)
from .routes import search_examples

SIMILARITY_WEIGHT = 0.7
QUALITY_WEIGHT = 0.2
RECENCY_WEIGHT = 0.1


def values_match(actual: Any, expected: Any) -> bool:
    """Loose equality on the string form of both values."""
    return str(actual) == str(expected)


def matches_filters(example: StoredExample, filters: Dict[str, Any]) -> bool:
    """
    Whether an example satisfies every metadata filter.

    Each key is looked up in the example metadata, then the input metadata, then the
    output metadata. The first place holding the key decides; a key found nowhere fails.
    """
    for key, expected in filters.items():
        sources = [example.metadata]
        if example.input is not None:
            sources.append(example.input.metadata)
        if example.output is not None:
            sources.append(example.output.metadata)

        for metadata in sources:
            if key in metadata:
                if not values_match(metadata[key], expected):
                    return False
                break
        else:
            return False

    return True


def apply_metadata_filters(results: List[SearchResult], filters: Optional[Dict[str, Any]]) -> List[SearchResult]:
    if not filters:
        return results

    return [r for r in results if r.example is not None and matches_filters(r.example, filters)]


def calculate_quality_score(example: StoredExample) -> float:
    score = 0.5
    if example.metadata:
        score += 0.2

    if example.output is not None:
        confidence = example.output.metadata.get("confidence")
        # bool is a subclass of int in Python
        if isinstance(confidence, (int, float)) and not isinstance(confidence, bool):
            score += 0.3 * confidence
        if len(example.output.text) > 50:
            score += 0.2

    return min(score, 1.0)


def calculate_recency_score(example: StoredExample) -> float:
    if example.create_time is None:
        return 0.5

    return 0.8


def apply_smart_ranking(results: List[SearchResult]) -> List[SearchResult]:
    """Blend similarity with quality and recency, then sort best first."""
    for result in results:
        quality = calculate_quality_score(result.example) if result.example else 0.5
        recency = calculate_recency_score(result.example) if result.example else 0.5
        result.similarity_score = (
            SIMILARITY_WEIGHT * result.similarity_score + QUALITY_WEIGHT * quality + RECENCY_WEIGHT * recency
        )

    return sorted(results, key=lambda r: r.similarity_score, reverse=True)


class ExampleSearchClient(ExampleStoreBaseClient):
    """Client for retrieving the examples most relevant to a query."""

    def search_examples(self, store_name: str, query: SearchQuery) -> SearchResponse:
        """
        Run a similarity search against a store.

        Args:
            store_name (str): Store resource name.
            query (SearchQuery): Query text, top_k, threshold and optional metadata filters.

        Raises:
            ValidationError: If the store name or query text is missing.
        """
        if not store_name:
            raise ValidationError("store name is required")
        if query is None:
            raise ValidationError("search query is required")
        query.validate_query()

        self.config.logger.debug(
            f"search_examples called | store: {store_name}, top_k: {query.top_k}, threshold: {query.similarity_threshold}"
        )
        res = self.make_request(
            method=HttpMethod.POST,
            path=search_examples(store_name),
            data={"query": query.to_body_dict()},
        )
        response = SearchResponse.model_validate(res)
        response.results = [r for r in response.results if r.similarity_score >= query.similarity_threshold]
        self.config.logger.debug(f"Search returned {len(response.results)} results for {store_name}")
        return response

    def search_similar_examples(self, store_name: str, example: Example, top_k: int) -> List[SearchResult]:
        """Find examples similar to an example's input text."""
        if example is None or example.input is None:
            raise ValidationError("example input is required")

        query = SearchQuery(text=example.input.text, top_k=top_k, similarity_threshold=DEFAULT_SIMILARITY_THRESHOLD)
        return self.search_examples(store_name, query).results

    def search_with_filters(
        self, store_name: str, query_text: str, top_k: int, filters: Optional[Dict[str, Any]] = None
    ) -> List[SearchResult]:
        """Search, then keep only results whose metadata matches every filter."""
        query = SearchQuery(
            text=query_text,
            top_k=top_k,
            similarity_threshold=DEFAULT_SIMILARITY_THRESHOLD,
            metadata_filters=filters or None,
        )
        results = self.search_examples(store_name, query).results
        return apply_metadata_filters(results, filters)

    def get_relevant_examples(
        self, store_name: str, query_text: str, top_k: int, min_similarity: float
    ) -> List[SearchResult]:
        """
        Retrieve the top_k most relevant examples.

        Twice as many candidates are fetched and re-ranked with a score of
        0.7 * similarity + 0.2 * quality + 0.1 * recency.
        """
        query = SearchQuery(text=query_text, top_k=top_k * 2, similarity_threshold=min_similarity)
        results = apply_smart_ranking(self.search_examples(store_name, query).results)
        if top_k > 0:
            results = results[:top_k]

        self.config.logger.info(f"Retrieved {len(results)} relevant examples from {store_name}")
        return results

    def search_by_category(self, store_name: str, query_text: str, category: str, top_k: int) -> List[SearchResult]:
        return self.search_with_filters(store_name, query_text, top_k, {"category": category})

    def search_by_difficulty(self, store_name: str, query_text: str, difficulty: str, top_k: int) -> List[SearchResult]:
        return self.search_with_filters(store_name, query_text, top_k, {"difficulty": difficulty})
