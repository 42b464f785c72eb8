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

"""Uploading, listing and removing examples in an example store."""

from collections import Counter
from typing import Any, Dict, List, Optional

from vertexai_preview.exceptions import NotFoundError, SDKError, ValidationError
from vertexai_preview.request_handler import HttpMethod
from .base import ExampleStoreBaseClient
from .models import (
    MAX_EXAMPLES_PER_UPLOAD,
    Example,
    ListExamplesResponse,
    StoredExample,
    validate_examples,
)
from .routes import remove_examples, store_of_example, upsert_examples


class ExampleClient(ExampleStoreBaseClient):
    """Client for the examples held by an example store."""

    def upload_examples(self, store_name: str, examples: List[Example]) -> List[StoredExample]:
        """
        Upload up to five examples to a store.

        Args:
            store_name (str): Store resource name.
            examples (list[Example]): Examples to upload.

        Returns:
            list[StoredExample]: The stored examples.

        Raises:
            ValidationError: If the store name is missing or the examples are invalid.
        """
        self.validate_upload_request(store_name, examples)
        self.config.logger.debug(f"upload_examples called | store: {store_name}, count: {len(examples)}")

        res = self.make_request(
            method=HttpMethod.POST,
            path=upsert_examples(store_name),
            data={"examples": [e.to_body_dict() for e in examples], "overwrite": False},
        )
        stored = ListExamplesResponse.model_validate(res).examples
        self.config.logger.info(f"Uploaded {len(stored)} examples to {store_name}")
        return stored

    def list_examples(
        self,
        store_name: str,
        page_size: int = 0,
        page_token: Optional[str] = None,
        filter: Optional[str] = None,
    ) -> ListExamplesResponse:
        """List one page of examples in a store."""
        return self._fetch_examples_page(store_name, page_size=page_size, page_token=page_token, filter=filter)

    def get_example(self, name: str) -> StoredExample:
        """
        Get a single example by its resource name.

        Raises:
            ValidationError: If the name is not an example resource name.
            NotFoundError: If the store has no such example.
        """
        store_name = store_of_example(name or "")
        if not store_name:
            raise ValidationError(f"invalid example name: {name}")

        example_id = name.rsplit("/", 1)[-1]
        page = self._fetch_examples_page(store_name, example_ids=[example_id])
        for example in page.examples:
            if example.name == name or example.example_id == example_id:
                return example

        raise NotFoundError(f"example not found: {name}", 404)

    def delete_example(self, name: str) -> None:
        """Remove a single example."""
        self.batch_delete_examples([name])

    def batch_delete_examples(self, names: List[str]) -> None:
        """
        Remove several examples, grouped by the store that owns them.

        Raises:
            ValidationError: If no names are given or a name is not an example resource name.
        """
        if not names:
            raise ValidationError("at least one example name is required")

        by_store: Dict[str, List[str]] = {}
        for name in names:
            store_name = store_of_example(name or "")
            if not store_name:
                raise ValidationError(f"invalid example name: {name}")
            by_store.setdefault(store_name, []).append(name.rsplit("/", 1)[-1])

        for store_name, example_ids in by_store.items():
            self.make_request(
                method=HttpMethod.POST,
                path=remove_examples(store_name),
                data={"exampleIds": example_ids},
            )
            self.config.logger.info(f"Removed {len(example_ids)} examples from {store_name}")

    def update_example(self, example: StoredExample, update_mask: Optional[List[str]] = None) -> StoredExample:
        """
        Overwrite an existing example.

        The upsert API replaces the whole example, so update_mask is only logged.
        """
        if example is None or not example.name:
            raise ValidationError("example name is required")

        store_name = store_of_example(example.name)
        if not store_name:
            raise ValidationError(f"invalid example name: {example.name}")

        self.config.logger.debug(f"update_example called | name: {example.name}, update_mask: {update_mask}")
        res = self.make_request(
            method=HttpMethod.POST,
            path=upsert_examples(store_name),
            data={"examples": [example.to_body_dict()], "overwrite": True},
        )
        updated = ListExamplesResponse.model_validate(res).examples
        if not updated:
            raise SDKError(f"no example returned when updating {example.name}")
        return updated[0]

    def list_all_examples(self, store_name: str) -> List[StoredExample]:
        """List every example in a store, following page tokens."""
        return self._list_all_examples(store_name)

    def upload_examples_from_list(self, store_name: str, examples: List[Example]) -> List[StoredExample]:
        """
        Upload any number of examples in batches of five.

        Raises:
            ValidationError: If no examples are given.
            SDKError: If a batch fails. Batches uploaded before it are kept.
        """
        if not examples:
            raise ValidationError("at least one example is required")

        uploaded = []
        for start in range(0, len(examples), MAX_EXAMPLES_PER_UPLOAD):
            end = min(start + MAX_EXAMPLES_PER_UPLOAD, len(examples))
            try:
                uploaded.extend(self.upload_examples(store_name, examples[start:end]))
            except SDKError as e:
                raise SDKError(f"failed to upload batch {start}-{end - 1}: {e}", e.status_code) from e

            self.config.logger.info(f"Uploaded example batch {start}-{end - 1} to {store_name}")

        return uploaded

    def validate_upload_request(self, store_name: str, examples: List[Example]) -> None:
        """
        Raises:
            ValidationError: If the store name is missing or the examples are invalid.
        """
        if not store_name:
            raise ValidationError("parent store name is required")

        validate_examples(examples)

    def get_example_metrics(self, store_name: str) -> Dict[str, Any]:
        """
        Summarize the examples of a store.

        Returns:
            dict: total_count, average_input_length, average_output_length,
                metadata_keys (sorted) and states (count per state).
        """
        examples = self._list_all_examples(store_name)
        metrics = {
            "total_count": len(examples),
            "average_input_length": 0.0,
            "average_output_length": 0.0,
            "metadata_keys": [],
            "states": {},
        }
        if not examples:
            return metrics

        input_length = 0
        output_length = 0
        keys = set()
        states = Counter()
        for example in examples:
            keys.update(example.metadata)
            if example.input is not None:
                input_length += len(example.input.text)
                keys.update(example.input.metadata)
            if example.output is not None:
                output_length += len(example.output.text)
                keys.update(example.output.metadata)
            states[example.state.value if example.state else ""] += 1

        metrics["average_input_length"] = input_length / len(examples)
        metrics["average_output_length"] = output_length / len(examples)
        metrics["metadata_keys"] = sorted(keys)
        metrics["states"] = dict(states)
        return metrics
