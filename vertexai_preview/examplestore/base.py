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

from vertexai_preview.auth import GoogleAuth
from vertexai_preview.base_client import BaseClient
from vertexai_preview.config import Config
from vertexai_preview.exceptions import ValidationError
from vertexai_preview.request_handler import HttpMethod
from .models import SUPPORTED_REGION, ListExamplesResponse, StoredExample
from .routes import fetch_examples

LIST_ALL_PAGE_SIZE = 100


class ExampleStoreBaseClient(BaseClient):
    """
    Shared plumbing for the example store clients.

    Example Store is only offered in us-central1, so any other configured
    location is rejected when a client is built.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        credentials: Optional[Credentials] = None,
        token: Optional[str] = None,
        request_handler=None,
    ):
        super().__init__(GoogleAuth(token=token, credentials=credentials), config, request_handler)
        if self.config.location != SUPPORTED_REGION:
            raise ValidationError(
                f"example store is only supported in {SUPPORTED_REGION}, got {self.config.location}"
            )

    def _fetch_examples_page(
        self,
        store_name: str,
        page_size: int = 0,
        page_token: Optional[str] = None,
        filter: Optional[str] = None,
        example_ids: Optional[List[str]] = None,
    ) -> ListExamplesResponse:
        if not store_name:
            raise ValidationError("store name is required")

        body = {}
        if page_size and page_size > 0:
            body["pageSize"] = page_size
        if page_token:
            body["pageToken"] = page_token
        if filter:
            body["filter"] = filter
        if example_ids:
            body["exampleIds"] = example_ids

        res = self.make_request(method=HttpMethod.POST, path=fetch_examples(store_name), data=body)
        return ListExamplesResponse.model_validate(res)

    def _list_all_examples(self, store_name: str) -> List[StoredExample]:
        examples = []
        page_token = None
        while True:
            page = self._fetch_examples_page(store_name, page_size=LIST_ALL_PAGE_SIZE, page_token=page_token)
            examples.extend(page.examples)
            if not page.next_page_token:
                break
            page_token = page.next_page_token

        return examples
