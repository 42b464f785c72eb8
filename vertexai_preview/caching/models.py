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

from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import Field, field_serializer, field_validator, model_validator

from vertexai_preview.models.base import VertexModel, restore_enum_wrapper
from vertexai_preview.models.content import Content


GEMINI_2_0_FLASH_001 = "gemini-2.0-flash-001"
GEMINI_2_0_PRO_001 = "gemini-2.0-pro-001"

SUPPORTED_MODELS = (GEMINI_2_0_FLASH_001, GEMINI_2_0_PRO_001)

DEFAULT_PAGE_SIZE = 50
DEFAULT_CACHE_TTL = timedelta(hours=24)


def is_supported_model(model_name: str) -> bool:
    """Whether the model supports content caching."""
    return model_name in SUPPORTED_MODELS


def get_supported_models() -> List[str]:
    """Models that support content caching."""
    return list(SUPPORTED_MODELS)


def parse_duration(value: Union[str, int, float, timedelta, None]) -> Optional[timedelta]:
    """Parse a google.protobuf.Duration string such as ``"3600s"`` or ``"1.5s"``."""
    if value is None or isinstance(value, timedelta):
        return value
    if isinstance(value, (int, float)):
        return timedelta(seconds=value)
    text = str(value).strip()
    if text.endswith("s"):
        text = text[:-1]
    return timedelta(seconds=float(text))


def format_duration(value: timedelta) -> str:
    """Format a timedelta as a google.protobuf.Duration string."""
    seconds = value.total_seconds()
    if seconds == int(seconds):
        return f"{int(seconds)}s"
    return f"{seconds:.9f}".rstrip("0") + "s"


class CacheState(str, Enum):
    """State of a cached content entry."""
    STATE_UNSPECIFIED = "CACHE_STATE_UNSPECIFIED"
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    ERROR = "ERROR"


class CacheUsageMetadata(VertexModel):
    """Usage statistics of a cached content entry."""

    total_token_count: Optional[int] = Field(None, alias="totalTokenCount")
    text_count: Optional[int] = Field(None, alias="textCount")
    image_count: Optional[int] = Field(None, alias="imageCount")
    video_duration_seconds: Optional[float] = Field(None, alias="videoDurationSeconds")
    audio_duration_seconds: Optional[float] = Field(None, alias="audioDurationSeconds")


class CachedContent(VertexModel):
    """
    Content cached for reuse across generation requests.

    Args:
        name: Resource name, ``projects/{project}/locations/{location}/cachedContents/{id}``.
        display_name: User provided display name.
        model: Full resource name of the model the content is cached for.
        system_instruction: Cached system instruction.
        contents: Cached content pieces.
        tools: Tool declarations available with the cache.
        tool_config: Tool configuration.
        ttl: Time to live. Input only on the API side.
        expire_time: When the cache expires.
    """

    name: Optional[str] = Field(None, description="Resource name")
    display_name: Optional[str] = Field(None, alias="displayName")
    model: Optional[str] = Field(None, description="Model resource name")
    system_instruction: Optional[Content] = Field(None, alias="systemInstruction")
    contents: Optional[List[Content]] = Field(None)
    tools: Optional[List[Dict[str, Any]]] = Field(None)
    tool_config: Optional[Dict[str, Any]] = Field(None, alias="toolConfig")
    create_time: Optional[datetime] = Field(None, alias="createTime")
    update_time: Optional[datetime] = Field(None, alias="updateTime")
    expire_time: Optional[datetime] = Field(None, alias="expireTime")
    ttl: Optional[timedelta] = Field(None)
    state: Optional[CacheState] = Field(None)
    usage_metadata: Optional[CacheUsageMetadata] = Field(None, alias="usageMetadata")

    @model_validator(mode="before")
    @classmethod
    def _restore_enums(cls, values):
        return restore_enum_wrapper(cls, values)

    @field_validator("ttl", mode="before")
    @classmethod
    def _parse_ttl(cls, value):
        return parse_duration(value)

    @field_serializer("ttl")
    def _serialize_ttl(self, value: Optional[timedelta]):
        return format_duration(value) if value is not None else None


class CacheConfig(VertexModel):
    """Settings used when creating a cache."""

    display_name: Optional[str] = Field(None, alias="displayName")
    model: str = Field(..., description="Model ID, e.g. gemini-2.0-flash-001")
    ttl: timedelta = Field(default=DEFAULT_CACHE_TTL)
    system_instruction: Optional[Content] = Field(None, alias="systemInstruction")
    tools: Optional[List[Dict[str, Any]]] = None
    tool_config: Optional[Dict[str, Any]] = Field(None, alias="toolConfig")

    @field_validator("ttl", mode="before")
    @classmethod
    def _parse_ttl(cls, value):
        return parse_duration(value)


class ListCacheOptions(VertexModel):
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, alias="pageSize")
    page_token: Optional[str] = Field(None, alias="pageToken")


class ListCacheResponse(VertexModel):
    cached_contents: List[CachedContent] = Field(default_factory=list, alias="cachedContents")
    next_page_token: Optional[str] = Field(None, alias="nextPageToken")
