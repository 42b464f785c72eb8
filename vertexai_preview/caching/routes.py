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

CACHED_CONTENTS = "cachedContents"


def cached_contents(parent: str) -> str:
    """Route for creating and listing cached contents under a location."""
    return f"{parent}/{CACHED_CONTENTS}"


def cached_content(parent: str, cache_id: str) -> str:
    """Route for a single cached content entry."""
    return f"{parent}/{CACHED_CONTENTS}/{cache_id}"


def publisher_model(parent: str, model: str) -> str:
    """Full resource name of a Google published model."""
    if model.startswith("projects/"):
        return model
    return f"{parent}/publishers/google/models/{model}"
