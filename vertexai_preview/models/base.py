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

"""Base pydantic model shared by all request and response types."""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict


class VertexModel(BaseModel):
    """
    Base model for Vertex AI resources.

    Fields use snake_case names in Python and camelCase aliases on the wire.
    Both spellings are accepted on input.
    """

    model_config = ConfigDict(populate_by_name=True, use_enum_values=False, protected_namespaces=())

    def to_body_dict(self) -> Dict[str, Any]:
        """Serialize the model into a JSON-ready request body using API field names."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


def restore_enum_wrapper(cls, values):
    """Helper to restore enum values from string representations."""
    if not isinstance(values, dict):
        return values

    for name, field in cls.model_fields.items():
        key = field.alias if field.alias in values else name
        value = values.get(key)
        if isinstance(value, str):
            field_type = field.annotation
            if field_type and hasattr(field_type, "__members__"):
                try:
                    values[key] = field_type(value)
                except ValueError:
                    pass  # leave as-is if invalid
    return values
