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

from .client import CachingClient
from .models import (
    GEMINI_2_0_FLASH_001,
    GEMINI_2_0_PRO_001,
    CacheConfig,
    CachedContent,
    CacheState,
    CacheUsageMetadata,
    ListCacheOptions,
    ListCacheResponse,
    get_supported_models,
    is_supported_model,
)
