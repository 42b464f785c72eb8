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

"""Example store lifecycle management."""

from typing import List, Optional

from tenacity import RetryError, Retrying, retry_if_result, stop_after_delay, wait_fixed

from vertexai_preview.exceptions import OperationError, ValidationError
from vertexai_preview.request_handler import HttpMethod
from .base import LIST_ALL_PAGE_SIZE, ExampleStoreBaseClient
from .models import ExampleStoreStats, ListStoresResponse, Store, StoreConfig, StoreState
from .routes import example_stores


class ExampleStoreClient(ExampleStoreBaseClient):
    """
    Client for creating, inspecting and deleting example stores.

    Typical Usage:
        ```python
        from vertexai_preview import Config
        from vertexai_preview.examplestore import ExampleStoreClient, Store, StoreConfig

        client = ExampleStoreClient(config=Config(project="my-project"))
        store = client.create_store(
            Store(display_name="support-faq", config=StoreConfig(display_name="support-faq"))
        )
        print(store.name, store.state)
        ```
    """

    def create_store(
        self, store: Store, config: Optional[StoreConfig] = None, store_id: Optional[str] = None
    ) -> Store:
        """
        Create an example store and wait for the creation operation.

        Args:
            store (Store): Store definition. Left unchanged; a copy is validated and defaulted.
            config (StoreConfig, optional): Store config. Replaces the config on ``store`` when given.
            store_id (str, optional): ID to assign to the store.

        Returns:
            Store: The created store.

        Raises:
            ValidationError: If the store or its config is missing or invalid.
            OperationError: If the creation operation fails.
        """
        if store is None:
            raise ValidationError("store is required")
        store = store.model_copy(deep=True)
        if config is not None:
            store.config = config.model_copy(deep=True)
        if store.config is None:
            raise ValidationError("store config is required")

        if not store.config.display_name:
            store.config.display_name = store.display_name
        store.config.validate_config()
        if not store.display_name:
            store.display_name = store.config.display_name

        self.config.logger.debug(
            f"create_store called | display_name: {store.display_name}, embedding_model: {store.config.embedding_model}"
        )
        res = self.make_request(
            method=HttpMethod.POST,
            path=example_stores(self.parent),
            data=store.to_body_dict(),
            params={"exampleStoreId": store_id},
        )
        created = Store.model_validate(self.wait_for_operation(res))
        self.config.logger.info(f"Created example store: {created.name}")
        return created

    def list_stores(
        self, page_size: int = 0, page_token: Optional[str] = None, filter: Optional[str] = None
    ) -> ListStoresResponse:
        """List example stores in the configured location."""
        res = self.make_request(
            method=HttpMethod.GET,
            path=example_stores(self.parent),
            params={
                "pageSize": page_size if page_size and page_size > 0 else None,
                "pageToken": page_token,
                "filter": filter,
            },
        )
        result = ListStoresResponse.model_validate(res)
        self.config.logger.debug(f"Listed {len(result.stores)} example stores")
        return result

    def get_store(self, name: str) -> Store:
        """
        Get an example store by resource name.

        Raises:
            ValidationError: If the name is empty.
            NotFoundError: If the store does not exist.
        """
        if not name:
            raise ValidationError("store name is required")

        res = self.make_request(method=HttpMethod.GET, path=name)
        return Store.model_validate(res)

    def delete_store(self, name: str, force: bool = False) -> None:
        """
        Delete an example store.

        Args:
            name (str): Store resource name.
            force (bool): Also delete the examples the store still holds.
        """
        if not name:
            raise ValidationError("store name is required")

        res = self.make_request(
            method=HttpMethod.DELETE,
            path=name,
            params={"force": "true" if force else None},
        )
        if res.get("name") and "/operations/" in res["name"]:
            self.wait_for_operation(res)
        self.config.logger.info(f"Deleted example store: {name}")

    def update_store(self, store: Store, update_mask: Optional[List[str]] = None) -> Store:
        """
        Update mutable fields of an example store.

        Args:
            store (Store): Store carrying its resource name and new values.
            update_mask (list[str], optional): Fields to update. Defaults to display name and description.
        """
        if store is None or not store.name:
            raise ValidationError("store name is required")

        mask = update_mask or ["displayName", "description"]
        res = self.make_request(
            method=HttpMethod.PATCH,
            path=store.name,
            data=store.model_copy(update={"name": None}).to_body_dict(),
            params={"updateMask": ",".join(mask)},
        )
        if res.get("name") and "/operations/" in res["name"]:
            res = self.wait_for_operation(res)
        updated = Store.model_validate(res)
        self.config.logger.info(f"Updated example store: {updated.name}")
        return updated

    def get_store_stats(self, name: str) -> ExampleStoreStats:
        """
        Compute statistics over every example of a store.

        Returns:
            ExampleStoreStats: Totals, average input and output lengths, the latest upload
                time and the sorted set of metadata keys.
        """
        examples = self._list_all_examples(name)
        stats = ExampleStoreStats(total_examples=len(examples))
        if not examples:
            return stats

        input_length = 0
        output_length = 0
        metadata_keys = set()
        for example in examples:
            if example.input is not None:
                input_length += len(example.input.text)
                metadata_keys.update(example.input.metadata)
            if example.output is not None:
                output_length += len(example.output.text)
                metadata_keys.update(example.output.metadata)
            metadata_keys.update(example.metadata)
            if example.create_time and (
                stats.last_example_upload is None or example.create_time > stats.last_example_upload
            ):
                stats.last_example_upload = example.create_time

        stats.total_size = input_length + output_length
        stats.average_input_length = input_length / len(examples)
        stats.average_output_length = output_length / len(examples)
        stats.metadata_keys = sorted(metadata_keys)
        return stats

    def wait_for_store_creation(self, name: str, timeout: float = 300, poll_interval: Optional[float] = None) -> Store:
        """
        Wait until a store leaves the CREATING state.

        Returns:
            Store: The store once it is ACTIVE.

        Raises:
            OperationError: If the store errors out, ends in an unexpected state, or the wait times out.
        """
        poll_interval = poll_interval if poll_interval is not None else self.config.operation_poll_interval
        retryer = Retrying(
            stop=stop_after_delay(timeout),
            wait=wait_fixed(poll_interval),
            retry=retry_if_result(lambda s: s.state == StoreState.CREATING),
        )
        try:
            store = retryer(self.get_store, name)
        except RetryError as e:
            raise OperationError(f"timeout waiting for store creation: {name}") from e

        if store.state == StoreState.ACTIVE:
            return store
        if store.state == StoreState.ERROR:
            raise OperationError(f"store creation failed: {name}")

        raise OperationError(f"unexpected store state: {store.state.value if store.state else None}")

    def list_all_stores(self) -> List[Store]:
        """List every example store, following page tokens."""
        stores = []
        page_token = None
        while True:
            page = self.list_stores(page_size=LIST_ALL_PAGE_SIZE, page_token=page_token)
            stores.extend(page.stores)
            if not page.next_page_token:
                break
            page_token = page.next_page_token

        return stores
