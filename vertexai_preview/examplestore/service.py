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

from typing import List, Optional

from google.auth.credentials import Credentials

from vertexai_preview.config import Config
from vertexai_preview.request_handler import RequestHandler
from .examples import ExampleClient
from .models import (
    DEFAULT_EMBEDDING_MODEL,
    DEFAULT_TOP_K,
    DEFAULT_SIMILARITY_THRESHOLD,
    Example,
    ExampleStoreStats,
    ListExamplesResponse,
    ListStoresResponse,
    SearchQuery,
    SearchResult,
    Store,
    StoreConfig,
    StoredExample,
)
from .routes import example, example_store
from .search import ExampleSearchClient
from .stores import ExampleStoreClient


class ExampleStoreService:
    """
    Convenience facade over the store, example and search clients.

    The three clients share one configuration, one authentication handler and one
    HTTP session. Methods suffixed ``_by_id`` accept a bare store ID and expand it
    into a full resource name.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        credentials: Optional[Credentials] = None,
        token: Optional[str] = None,
        request_handler=None,
    ):
        self.config = config or Config()
        self._request_handler = request_handler or RequestHandler(self.config)
        self.stores = ExampleStoreClient(self.config, credentials, token, self._request_handler)
        self.examples = ExampleClient(self.config, credentials, token, self._request_handler)
        self.search = ExampleSearchClient(self.config, credentials, token, self._request_handler)
        # one token cache for all three clients
        self.examples.auth = self.stores.auth
        self.search.auth = self.stores.auth

    def create_store(self, store_config: StoreConfig) -> Store:
        """Create a store described by a StoreConfig."""
        store = Store(
            display_name=store_config.display_name,
            description=store_config.description,
            config=store_config,
        )
        return self.stores.create_store(store)

    def create_default_store(self, display_name: str, description: str = "") -> Store:
        """Create a store with the default embedding model."""
        return self.create_store(
            StoreConfig(embedding_model=DEFAULT_EMBEDDING_MODEL, display_name=display_name, description=description)
        )

    def list_stores(self, page_size: int = 0, page_token: Optional[str] = None) -> ListStoresResponse:
        return self.stores.list_stores(page_size=page_size, page_token=page_token)

    def get_store(self, store_name: str) -> Store:
        return self.stores.get_store(store_name)

    def get_store_by_id(self, store_id: str) -> Store:
        return self.get_store(self.generate_store_name(store_id))

    def delete_store(self, store_name: str, force: bool = False) -> None:
        self.stores.delete_store(store_name, force=force)

    def delete_store_by_id(self, store_id: str, force: bool = False) -> None:
        self.delete_store(self.generate_store_name(store_id), force=force)

    def get_store_stats(self, store_name: str) -> ExampleStoreStats:
        return self.stores.get_store_stats(store_name)

    def get_store_stats_by_id(self, store_id: str) -> ExampleStoreStats:
        return self.get_store_stats(self.generate_store_name(store_id))

    def upload_examples(self, store_name: str, examples: List[Example]) -> List[StoredExample]:
        return self.examples.upload_examples(store_name, examples)

    def upload_examples_by_store_id(self, store_id: str, examples: List[Example]) -> List[StoredExample]:
        return self.upload_examples(self.generate_store_name(store_id), examples)

    def batch_upload_examples(self, store_name: str, examples: List[Example]) -> List[StoredExample]:
        """Upload any number of examples in batches of five."""
        return self.examples.upload_examples_from_list(store_name, examples)

    def list_examples(self, store_name: str, page_size: int = 0, page_token: Optional[str] = None) -> ListExamplesResponse:
        return self.examples.list_examples(store_name, page_size=page_size, page_token=page_token)

    def list_examples_by_store_id(
        self, store_id: str, page_size: int = 0, page_token: Optional[str] = None
    ) -> ListExamplesResponse:
        return self.list_examples(self.generate_store_name(store_id), page_size, page_token)

    def delete_example(self, example_name: str) -> None:
        self.examples.delete_example(example_name)

    def batch_delete_examples(self, example_names: List[str]) -> None:
        self.examples.batch_delete_examples(example_names)

    def search_examples(self, store_name: str, query_text: str, top_k: int = DEFAULT_TOP_K) -> List[SearchResult]:
        query = SearchQuery(text=query_text, top_k=top_k, similarity_threshold=DEFAULT_SIMILARITY_THRESHOLD)
        return self.search.search_examples(store_name, query).results

    def search_examples_by_store_id(self, store_id: str, query_text: str, top_k: int = DEFAULT_TOP_K) -> List[SearchResult]:
        return self.search_examples(self.generate_store_name(store_id), query_text, top_k)

    def search_examples_advanced(self, store_name: str, query: SearchQuery) -> List[SearchResult]:
        return self.search.search_examples(store_name, query).results

    def quick_search(self, store_name: str, query_text: str) -> List[SearchResult]:
        """Search with the default top_k and similarity threshold."""
        return self.search_examples(store_name, query_text, DEFAULT_TOP_K)

    def quick_search_by_store_id(self, store_id: str, query_text: str) -> List[SearchResult]:
        return self.quick_search(self.generate_store_name(store_id), query_text)

    def generate_store_name(self, store_id: str) -> str:
        return example_store(self.config.parent, store_id)

    def generate_example_name(self, store_id: str, example_id: str) -> str:
        return example(self.generate_store_name(store_id), example_id)

    def close(self):
        self._request_handler.close()
