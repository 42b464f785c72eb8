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

"""Export and import of prompts as JSON, YAML or CSV."""

import csv
import io
import json
from typing import List

import yaml

from vertexai_preview.exceptions import ValidationError
from .models import ExportFormat, Prompt

CSV_FIELDS = [
    "id",
    "name",
    "display_name",
    "description",
    "template",
    "variables",
    "category",
    "tags",
    "version_id",
    "system_instruction",
    "is_public",
]
# Multi-valued CSV columns are joined with this separator.
CSV_LIST_SEPARATOR = ";"


def _prompt_records(prompts: List[Prompt]) -> List[dict]:
    return [p.model_dump(mode="json", exclude_none=True) for p in prompts]


def dump_prompts(prompts: List[Prompt], fmt: ExportFormat) -> str:
    """
    Serialize prompts.

    Raises:
        ValidationError: For an unsupported format.
    """
    fmt = ExportFormat(fmt)
    if fmt == ExportFormat.JSON:
        return json.dumps({"prompts": _prompt_records(prompts)}, indent=2)
    if fmt == ExportFormat.YAML:
        return yaml.safe_dump({"prompts": _prompt_records(prompts)}, sort_keys=False, allow_unicode=True)

    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=CSV_FIELDS, extrasaction="ignore")
    writer.writeheader()
    for prompt in prompts:
        row = prompt.model_dump(mode="json", include=set(CSV_FIELDS))
        row["variables"] = CSV_LIST_SEPARATOR.join(prompt.variables)
        row["tags"] = CSV_LIST_SEPARATOR.join(prompt.tags)
        row["is_public"] = "true" if prompt.is_public else "false"
        writer.writerow({k: "" if v is None else v for k, v in row.items()})
    return buf.getvalue()


def _split(value: str) -> List[str]:
    return [v for v in (value or "").split(CSV_LIST_SEPARATOR) if v]


def load_prompts(data: str, fmt: ExportFormat) -> List[Prompt]:
    """
    Parse prompts produced by ``dump_prompts`` (or hand written in the same shape).

    JSON and YAML accept either ``{"prompts": [...]}`` or a bare list.

    Raises:
        ValidationError: If the data cannot be parsed.
    """
    fmt = ExportFormat(fmt)
    try:
        if fmt == ExportFormat.CSV:
            records = []
            for row in csv.DictReader(io.StringIO(data)):
                record = {k: v for k, v in row.items() if v not in (None, "")}
                record["variables"] = _split(row.get("variables"))
                record["tags"] = _split(row.get("tags"))
                record["is_public"] = (row.get("is_public") or "").lower() == "true"
                records.append(record)
        else:
            parsed = json.loads(data) if fmt == ExportFormat.JSON else yaml.safe_load(data)
            records = parsed.get("prompts", []) if isinstance(parsed, dict) else parsed
    except (ValueError, yaml.YAMLError, csv.Error) as e:
        raise ValidationError(f"failed to parse {fmt.value} import data: {e}") from e

    if not isinstance(records, list):
        raise ValidationError(f"{fmt.value} import data must contain a list of prompts")
    try:
        return [Prompt.model_validate(r) for r in records]
    except ValueError as e:
        raise ValidationError(f"invalid prompt in {fmt.value} import data: {e}") from e
