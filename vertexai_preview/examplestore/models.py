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

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field, model_validator

from vertexai_preview.exceptions import ValidationError
from vertexai_preview.models.base import VertexModel, restore_enum_wrapper


MAX_EXAMPLES_PER_UPLOAD = 5
MAX_STORES_PER_PROJECT = 50
SUPPORTED_REGION = "us-central1"
DEFAULT_EMBEDDING_MODEL = "text-embedding-005"
DEFAULT_TOP_K = 10
DEFAULT_SIMILARITY_THRESHOLD = 0.7

EMBEDDING_MODELS = (
    "text-embedding-005",
    "text-multilingual-embedding-002",
    "textembedding-gecko",
    "textembedding-gecko-multilingual",
)


# --------------------
# Enums
# --------------------

class StoreState(str, Enum):
    """Lifecycle state of an example store."""
    STORE_STATE_UNSPECIFIED = "STORE_STATE_UNSPECIFIED"
    ACTIVE = "ACTIVE"
    CREATING = "CREATING"
    ERROR = "ERROR"
    DELETING = "DELETING"


class ExampleState(str, Enum):
    """Processing state of a stored example."""
    EXAMPLE_STATE_UNSPECIFIED = "EXAMPLE_STATE_UNSPECIFIED"
    ACTIVE = "ACTIVE"
    PROCESSING = "PROCESSING"
    ERROR = "ERROR"


# --------------------
# Store Models
# --------------------

class StoreConfig(VertexModel):
    """Configuration of an example store.

    Args:
        embedding_model: Embedding model used to index examples. Defaults to text-embedding-005.
        display_name: Display name of the store. Required.
        description: Optional description.
    """
    embedding_model: Optional[str] = Field(None, alias="vertexEmbeddingModel")
    display_name: Optional[str] = Field(None, alias="displayName", exclude=True)
    description: Optional[str] = Field(None, exclude=True)

    def validate_config(self) -> None:
        """
        Fill in defaults and validate the configuration.

        Raises:
            ValidationError: If the embedding model is unsupported or the display name is missing.
        """
        if not self.embedding_model:
            self.embedding_model = DEFAULT_EMBEDDING_MODEL

        if self.embedding_model not in EMBEDDING_MODELS:
            raise ValidationError(f"unsupported embedding model: {self.embedding_model}")

        if not self.display_name:
            raise ValidationError("display name is required")


class Store(VertexModel):
    """An example store resource."""
    name: Optional[str] = None
    display_name: Optional[str] = Field(None, alias="displayName")
    description: Optional[str] = None
    config: Optional[StoreConfig] = Field(None, alias="exampleStoreConfig")
    create_time: Optional[datetime] = Field(None, alias="createTime")
    update_time: Optional[datetime] = Field(None, alias="updateTime")
    state: Optional[StoreState] = None
    example_count: Optional[int] = Field(None, alias="exampleCount")

    @model_validator(mode="before")
    @classmethod
    def _restore_enums(cls, values):
        return restore_enum_wrapper(cls, values)


class ListStoresResponse(VertexModel):
    stores: List[Store] = Field(default_factory=list, alias="exampleStores")
    next_page_token: Optional[str] = Field(None, alias="nextPageToken")


# --------------------
# Example Models
# --------------------

class Content(VertexModel):
    """Text with optional metadata, used for example inputs and outputs."""
    text: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)


class Example(VertexModel):
    """An example to upload.

    Args:
        input: The example input. Required, with text.
        output: The expected output. Required, with text.
        display_name: Optional display name.
        metadata: Arbitrary metadata used for filtering and ranking.
    """
    input: Optional[Content] = None
    output: Optional[Content] = None
    display_name: Optional[str] = Field(None, alias="displayName")
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def validate_example(self) -> None:
        """
        Raises:
            ValidationError: If input or output (or their text) is missing.
        """
        if self.input is None:
            raise ValidationError("input is required")
        if not self.input.text:
            raise ValidationError("input text is required")
        if self.output is None:
            raise ValidationError("output is required")
        if not self.output.text:
            raise ValidationError("output text is required")


class StoredExample(VertexModel):
    """An example persisted in a store."""
    name: Optional[str] = None
    display_name: Optional[str] = Field(None, alias="displayName")
    input: Optional[Content] = None
    output: Optional[Content] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    create_time: Optional[datetime] = Field(None, alias="createTime")
    update_time: Optional[datetime] = Field(None, alias="updateTime")
    state: Optional[ExampleState] = None
    embedding_vector: Optional[List[float]] = Field(None, alias="embeddingVector")

    @model_validator(mode="before")
    @classmethod
    def _restore_enums(cls, values):
        return restore_enum_wrapper(cls, values)

    @property
    def example_id(self) -> str:
        """Last segment of the resource name."""
        return (self.name or "").rsplit("/", 1)[-1]


class ListExamplesResponse(VertexModel):
    examples: List[StoredExample] = Field(default_factory=list)
    next_page_token: Optional[str] = Field(None, alias="nextPageToken")


def validate_examples(examples: List[Example]) -> None:
    """
    Validate a batch of examples for a single upload.

    Raises:
        ValidationError: If the batch is empty, too large, or an example is invalid.
    """
    if not examples:
        raise ValidationError("at least one example is required")

    if len(examples) > MAX_EXAMPLES_PER_UPLOAD:
        raise ValidationError(f"maximum {MAX_EXAMPLES_PER_UPLOAD} examples per upload, got {len(examples)}")

    for i, example in enumerate(examples):
        try:
            example.validate_example()
        except ValidationError as e:
            raise ValidationError(f"example {i}: {e.message}") from e


# --------------------
# Search Models
# --------------------

class SearchQuery(VertexModel):
    """A similarity search query."""
    text: str = ""
    top_k: int = Field(default=DEFAULT_TOP_K, alias="topK")
    similarity_threshold: float = Field(default=DEFAULT_SIMILARITY_THRESHOLD, alias="similarityThreshold")
    metadata_filters: Optional[Dict[str, Any]] = Field(None, alias="metadataFilters")

    def validate_query(self) -> None:
        """
        Validate the query, resetting out-of-range values to their defaults.

        Raises:
            ValidationError: If the query text is empty.
        """
        if not self.text:
            raise ValidationError("query text is required")

        if self.top_k <= 0:
            self.top_k = DEFAULT_TOP_K

        if self.similarity_threshold < 0 or self.similarity_threshold > 1:
            self.similarity_threshold = DEFAULT_SIMILARITY_THRESHOLD


class SearchResult(VertexModel):
    example: Optional[StoredExample] = None
    similarity_score: float = Field(default=0.0, alias="similarityScore")
    distance: float = 0.0


class SearchResponse(VertexModel):
    results: List[SearchResult] = Field(default_factory=list)
    query_embedding: Optional[List[float]] = Field(None, alias="queryEmbedding")


class ExampleStoreStats(VertexModel):
    """Statistics computed over every example of a store."""
    total_examples: int = 0
    total_size: int = 0
    last_example_upload: Optional[datetime] = None
    average_input_length: float = 0.0
    average_output_length: float = 0.0
    metadata_keys: List[str] = Field(default_factory=list)
