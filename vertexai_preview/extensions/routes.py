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

from urllib.parse import quote

EXTENSIONS = "extensions"
STORAGE_DOWNLOAD_URL = "https://storage.googleapis.com/storage/v1/b/{bucket}/o/{object}"


def extensions(parent: str) -> str:
    """Route for listing extensions."""
    return f"{parent}/{EXTENSIONS}"


def import_extension(parent: str) -> str:
    """Route for registering an extension."""
    return f"{parent}/{EXTENSIONS}:import"


def extension(parent: str, extension_id: str) -> str:
    """Route for a single extension."""
    return f"{parent}/{EXTENSIONS}/{extension_id}"


def execute_extension(name: str) -> str:
    """Route for executing an extension operation."""
    return f"{name}:execute"


def query_extension(name: str) -> str:
    """Route for querying an extension with natural language."""
    return f"{name}:query"


def gcs_object(uri: str) -> str:
    """Cloud Storage JSON API URL for downloading a ``gs://bucket/object`` URI."""
    if not uri.startswith("gs://"):
        raise ValueError(f"not a Cloud Storage URI: {uri}")

    bucket, _, obj = uri[len("gs://") :].partition("/")
    if not bucket or not obj:
        raise ValueError(f"not a Cloud Storage object URI: {uri}")

    return STORAGE_DOWNLOAD_URL.format(bucket=bucket, object=quote(obj, safe=""))
