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

from .examples import ExampleClient
from .search import ExampleSearchClient
from .service import ExampleStoreService
from .stores import ExampleStoreClient
from .models import (
    DEFAULT_EMBEDDING_MODEL,
    DEFAULT_SIMILARITY_THRESHOLD,
    DEFAULT_TOP_K,
    EMBEDDING_MODELS,
    MAX_EXAMPLES_PER_UPLOAD,
    MAX_STORES_PER_PROJECT,
    SUPPORTED_REGION,
    Content,
    Example,
    ExampleState,
    ExampleStoreStats,
    ListExamplesResponse,
    ListStoresResponse,
    SearchQuery,
    SearchResponse,
    SearchResult,
    Store,
    StoreConfig,
    StoredExample,
    StoreState,
    validate_examples,
)
