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

EXAMPLE_STORES = "exampleStores"
EXAMPLES = "examples"


def example_stores(parent: str) -> str:
    """Route for creating and listing example stores."""
    return f"{parent}/{EXAMPLE_STORES}"


def example_store(parent: str, store_id: str) -> str:
    """Route for a single example store."""
    return f"{parent}/{EXAMPLE_STORES}/{store_id}"


def example(store_name: str, example_id: str) -> str:
    """Route for a single example inside a store."""
    return f"{store_name}/{EXAMPLES}/{example_id}"


def upsert_examples(store_name: str) -> str:
    """Route for uploading or overwriting examples."""
    return f"{store_name}:upsertExamples"


def fetch_examples(store_name: str) -> str:
    """Route for fetching examples, optionally by ID."""
    return f"{store_name}:fetchExamples"


def remove_examples(store_name: str) -> str:
    """Route for removing examples."""
    return f"{store_name}:removeExamples"


def search_examples(store_name: str) -> str:
    """Route for similarity search over examples."""
    return f"{store_name}:searchExamples"


def store_of_example(example_name: str) -> str:
    """Store resource name that owns an example resource name."""
    marker = f"/{EXAMPLES}/"
    if marker not in example_name:
        return ""
    return example_name.split(marker, 1)[0]
