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

"""In-process prompt registry with versioning, templating and search."""

import hashlib
import json
import threading
import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from vertexai_preview.config import Config
from vertexai_preview.exceptions import SDKError
from .errors import (
    InvalidRequestError,
    InvalidVariableError,
    MissingVariablesError,
    PromptAlreadyExistsError,
    PromptError,
    PromptNotFoundError,
    VersionConflictError,
    VersionNotFoundError,
)
from .metrics import MetricsCollector
from .models import (
    DEFAULT_LIST_PAGE_SIZE,
    DEFAULT_SEARCH_PAGE_SIZE,
    MAX_LIST_PAGE_SIZE,
    MAX_SEARCH_PAGE_SIZE,
    MAX_VERSION_PAGE_SIZE,
    ApplyTemplateRequest,
    ApplyTemplateResponse,
    BatchCreatePromptsRequest,
    BatchCreatePromptsResponse,
    BatchOperationResult,
    BatchTemplateResult,
    CreatePromptRequest,
    CreateVersionRequest,
    DeletePromptRequest,
    ExportPromptsRequest,
    ExportPromptsResponse,
    GetPromptRequest,
    ImportPromptsRequest,
    ListPromptsRequest,
    ListPromptsResponse,
    ListVersionsRequest,
    ListVersionsResponse,
    Prompt,
    PromptMetrics,
    PromptVersion,
    RestoreVersionRequest,
    SearchPromptsRequest,
    SearchPromptsResponse,
    SearchResult,
    TemplateAnalysis,
    TemplatePreview,
    TemplateValidationResult,
    UpdatePromptRequest,
    ValidationMode,
)
from .search import calculate_search_score
from .serialization import dump_prompts, load_prompts
from .template import CompiledTemplate, TemplateAnalyzer, TemplateCompiler, TemplateProcessor

PAGE_TOKEN_PREFIX = "offset_"
ORDER_FIELDS = ("name", "created_at", "updated_at")
DEFAULT_CACHE_EXPIRY = timedelta(minutes=30)
EXPORTED_BY = "vertexai_preview"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def compute_etag(prompt: Prompt) -> str:
    """Fingerprint of the prompt content that changes whenever the prompt is saved."""
    content = prompt.model_dump(mode="json", exclude={"etag", "metadata"})
    digest = hashlib.sha256(json.dumps(content, sort_keys=True).encode("utf-8"))
    return digest.hexdigest()[:16]


def parse_page_token(token: Optional[str]) -> int:
    if not token:
        return 0
    if not token.startswith(PAGE_TOKEN_PREFIX):
        raise InvalidRequestError("page_token", f"invalid page token: {token}")
    try:
        offset = int(token[len(PAGE_TOKEN_PREFIX) :])
    except ValueError as e:
        raise InvalidRequestError("page_token", f"invalid page token: {token}") from e
    if offset < 0:
        raise InvalidRequestError("page_token", f"invalid page token: {token}")
    return offset


def paginate(items: List[Any], page_size: int, page_token: Optional[str], default: int, maximum: int) -> Tuple[List[Any], Optional[str]]:
    """Slice one page of items; the token is ``offset_N`` of the next page."""
    if page_size <= 0 or page_size > maximum:
        page_size = default

    start = parse_page_token(page_token)
    end = start + page_size
    next_token = f"{PAGE_TOKEN_PREFIX}{end}" if end < len(items) else None
    return items[start:end], next_token


def _matches_filters(
    prompt: Prompt,
    category: Optional[str] = None,
    tags: Optional[List[str]] = None,
    created_by: Optional[str] = None,
    created_after: Optional[datetime] = None,
    created_before: Optional[datetime] = None,
    is_public: Optional[bool] = None,
) -> bool:
    if category and prompt.category != category:
        return False
    if tags and not set(tags).issubset(prompt.tags):
        return False
    if created_by and prompt.created_by != created_by:
        return False
    created_after, created_before = _as_utc(created_after), _as_utc(created_before)
    if created_after and (prompt.created_at is None or prompt.created_at < created_after):
        return False
    if created_before and (prompt.created_at is None or prompt.created_at > created_before):
        return False
    if is_public is not None and prompt.is_public != is_public:
        return False
    return True


def _order_key(prompt: Prompt, field: str):
    value = getattr(prompt, field)
    return (value is None, value if value is not None else "")


class PromptService:
    """
    Manages prompt templates, their version history and template rendering.

    Prompts live in an in-process registry guarded by a re-entrant lock. Reads by ID go through a
    small expiring cache whose hit ratio is reported in the service metrics.

    Args:
        config (Config, optional): SDK configuration. A project is required to build resource names.
        processor (TemplateProcessor, optional): Template engine and validation mode.
            Defaults to the simple engine in warn mode.
        metrics (MetricsCollector, optional): Collector for operation counters.
        cache_expiry (timedelta, optional): Lifetime of cached reads. Defaults to 30 minutes.

    Example:
        ```python
        from vertexai_preview import Config
        from vertexai_preview.prompts import PromptService, CreatePromptRequest, Prompt

        service = PromptService(Config(project="my-project"))
        prompt = service.create_prompt(
            CreatePromptRequest(prompt=Prompt(name="greeting", template="Hello {name}!"), create_version=True)
        )
        service.apply_template_simple(prompt.id, {"name": "Ada"})  # "Hello Ada!"
        ```
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        processor: Optional[TemplateProcessor] = None,
        metrics: Optional[MetricsCollector] = None,
        cache_expiry: timedelta = DEFAULT_CACHE_EXPIRY,
    ):
        self.config = config or Config()
        self.parent = self.config.parent
        self.processor = processor or TemplateProcessor()
        self.metrics = metrics or MetricsCollector()
        self.cache_expiry = cache_expiry
        self._compiler = TemplateCompiler(self.processor)
        self._lock = threading.RLock()
        self._prompts: Dict[str, Prompt] = {}
        self._versions: Dict[str, List[PromptVersion]] = {}
        self._cache: Dict[str, Tuple[Prompt, float]] = {}
        self.config.logger.info(f"Prompt service initialized for {self.parent}")

    # =====================
    # Registry internals
    # =====================

    def _cached(self, prompt_id: str) -> Optional[Prompt]:
        with self._lock:
            entry = self._cache.get(prompt_id)
            if entry is not None and entry[1] > time.monotonic():
                self.metrics.increment_cache_hit()
                return entry[0]
            self._cache.pop(prompt_id, None)
        self.metrics.increment_cache_miss()
        return None

    def _cache_put(self, prompt: Prompt):
        with self._lock:
            self._cache[prompt.id] = (prompt, time.monotonic() + self.cache_expiry.total_seconds())

    def _find_by_name(self, name: str) -> Optional[Prompt]:
        with self._lock:
            return next((p for p in self._prompts.values() if p.name == name), None)

    def _lookup(self, prompt_id: Optional[str] = None, name: Optional[str] = None) -> Prompt:
        if not prompt_id and not name:
            raise InvalidRequestError("prompt_id_or_name", "either prompt_id or name must be specified")

        if prompt_id:
            prompt = self._cached(prompt_id)
            if prompt is None:
                with self._lock:
                    prompt = self._prompts.get(prompt_id)
                if prompt is not None:
                    self._cache_put(prompt)
        else:
            prompt = self._find_by_name(name)

        if prompt is None:
            raise PromptNotFoundError(prompt_id or name)
        return prompt.model_copy(deep=True)

    def _store(self, prompt: Prompt):
        stored = prompt.model_copy(deep=True)
        stored.metadata.pop("versions", None)
        stored.metadata.pop("usage", None)
        with self._lock:
            self._prompts[stored.id] = stored
            self._cache.pop(stored.id, None)

    def _declared_variables(self, prompt: Prompt) -> List[str]:
        return prompt.variables or self.processor.extract_variables(prompt.template)

    def _new_version(
        self,
        prompt_id: str,
        prompt: Prompt,
        version_name: Optional[str],
        changelog: Optional[str],
        branch_name: Optional[str] = None,
    ) -> PromptVersion:
        with self._lock:
            history = self._versions.setdefault(prompt_id, [])
            active = next((v for v in history if v.is_active), None)
            version = PromptVersion(
                version_id=f"version_{uuid.uuid4().hex}",
                version_name=version_name or f"v{len(history) + 1}",
                prompt_id=prompt_id,
                template=prompt.template,
                variables=list(prompt.variables),
                generation_config=prompt.generation_config,
                safety_settings=prompt.safety_settings,
                system_instruction=prompt.system_instruction,
                description=prompt.description,
                created_at=_now(),
                created_by=prompt.updated_by or prompt.created_by,
                is_active=True,
                changelog=changelog,
                parent_version_id=active.version_id if active else None,
                branch_name=branch_name,
            )
            for existing in history:
                existing.is_active = False
            history.append(version)

        self.metrics.increment_version_created()
        self.config.logger.debug(f"Created version {version.version_id} for prompt {prompt_id}")
        return version.model_copy(deep=True)

    def _version_history(self, prompt_id: str) -> List[PromptVersion]:
        with self._lock:
            return [v.model_copy(deep=True) for v in self._versions.get(prompt_id, [])]

    @staticmethod
    def _overlay_version(prompt: Prompt, version: PromptVersion) -> Prompt:
        return prompt.model_copy(
            update={
                "template": version.template,
                "variables": list(version.variables),
                "generation_config": version.generation_config,
                "safety_settings": version.safety_settings,
                "system_instruction": version.system_instruction,
                "version_id": version.version_id,
                "version_name": version.version_name,
                "updated_at": version.created_at,
            }
        )

    # =====================
    # Prompt CRUD
    # =====================

    def create_prompt(self, request: CreatePromptRequest) -> Prompt:
        """
        Store a new prompt.

        Args:
            request (CreatePromptRequest): The prompt plus creation options. ``dry_run`` returns the
                prepared prompt without storing it; ``create_version`` records version ``v1``.

        Returns:
            Prompt: The stored prompt with ID, resource name, timestamps and etag filled in.

        Raises:
            InvalidRequestError: If the request, prompt or template is missing.
            InvalidTemplateError: If ``validate_template`` is set and the template is invalid.
            PromptAlreadyExistsError: If a prompt with the same name or ID exists.
        """
        if request is None:
            raise InvalidRequestError("request", "cannot be None")
        if request.prompt is None:
            raise InvalidRequestError("prompt", "cannot be None")
        if not request.prompt.template:
            raise InvalidRequestError("template", "cannot be empty")

        prompt = request.prompt.model_copy(deep=True)
        prompt.variables = self._declared_variables(prompt)
        if request.validate_template:
            self.processor.validate_template(prompt.template, prompt.variables)

        prompt.id = prompt.id or f"prompt_{uuid.uuid4().hex}"
        prompt.resource_name = f"{self.parent}/prompts/{prompt.id}"
        prompt.project_id = self.config.project
        prompt.location = self.config.location
        prompt.created_at = prompt.updated_at = _now()
        prompt.version_id = None
        prompt.etag = compute_etag(prompt)

        if request.dry_run:
            self.config.logger.debug(f"create_prompt dry run | name: {prompt.name}")
            return prompt

        with self._lock:
            if prompt.name and self._find_by_name(prompt.name) is not None:
                raise PromptAlreadyExistsError(prompt.name)
            if prompt.id in self._prompts:
                raise PromptAlreadyExistsError(prompt.name or prompt.id)

            if request.create_version:
                version = self._new_version(prompt.id, prompt, request.version_name or "v1", "Initial version")
                prompt.version_id = version.version_id
                prompt.version_name = version.version_name
                prompt.etag = compute_etag(prompt)
            self._store(prompt)

        self.metrics.increment_prompt_created()
        self.config.logger.info(f"Prompt created: {prompt.id} ({prompt.name})")
        return prompt

    def get_prompt(self, request: GetPromptRequest) -> Prompt:
        """
        Fetch a prompt by ID or name.

        ``version_id`` overlays that version's template and settings; ``include_versions`` and
        ``include_usage`` attach the version history and usage figures under ``metadata``.

        Raises:
            PromptNotFoundError: If no prompt matches.
            VersionNotFoundError: If the requested version does not exist.
        """
        prompt = self._lookup(request.prompt_id, request.name)

        if request.version_id and request.version_id != prompt.version_id:
            prompt = self._overlay_version(prompt, self.get_version(prompt.id, request.version_id))

        if request.include_versions:
            prompt.metadata["versions"] = [v.model_dump(mode="json") for v in self._version_history(prompt.id)]
        if request.include_usage:
            usage = PromptMetrics(
                prompt_id=prompt.id,
                version_metrics={v.version_id: v.usage for v in self._version_history(prompt.id)},
            )
            prompt.metadata["usage"] = usage.model_dump(mode="json")

        self.metrics.increment_prompt_retrieved()
        return prompt

    def update_prompt(self, request: UpdatePromptRequest) -> Prompt:
        """
        Replace a prompt's content, keeping its ID and creation time.

        Raises:
            VersionConflictError: If ``if_match_etag`` does not match the stored etag.
            PromptAlreadyExistsError: If the prompt is renamed to a name already in use.
        """
        if request is None or request.prompt is None:
            raise InvalidRequestError("prompt", "cannot be None")

        existing = self._lookup(request.prompt.id, request.prompt.name)
        if request.if_match_etag and request.if_match_etag != existing.etag:
            raise VersionConflictError(existing.id, request.if_match_etag, existing.etag)

        updated = request.prompt.model_copy(deep=True)
        updated.name = updated.name or existing.name
        updated.variables = self._declared_variables(updated)
        if request.validate_template:
            self.processor.validate_template(updated.template, updated.variables)

        updated.id = existing.id
        updated.resource_name = existing.resource_name
        updated.project_id = existing.project_id
        updated.location = existing.location
        updated.created_at = existing.created_at
        updated.created_by = existing.created_by
        updated.updated_at = _now()

        with self._lock:
            other = self._find_by_name(updated.name)
            if other is not None and other.id != existing.id:
                raise PromptAlreadyExistsError(updated.name)

            if request.create_new_version:
                version = self._new_version(existing.id, updated, request.version_name, request.changelog)
                updated.version_id = version.version_id
                updated.version_name = version.version_name
            else:
                updated.version_id = updated.version_id or existing.version_id
                updated.version_name = updated.version_name or existing.version_name
            updated.etag = compute_etag(updated)
            self._store(updated)

        self.metrics.increment_prompt_updated()
        self.config.logger.info(f"Prompt updated: {updated.id} ({updated.name})")
        return updated

    def delete_prompt(self, request: DeletePromptRequest):
        """
        Remove a prompt. Its version history is kept unless ``delete_versions`` is set.

        Raises:
            VersionConflictError: If ``if_match_etag`` does not match the stored etag.
        """
        prompt = self._lookup(request.prompt_id, request.name)
        if request.if_match_etag and request.if_match_etag != prompt.etag:
            raise VersionConflictError(prompt.id, request.if_match_etag, prompt.etag)

        with self._lock:
            self._prompts.pop(prompt.id, None)
            self._cache.pop(prompt.id, None)
            if request.delete_versions:
                self._versions.pop(prompt.id, None)

        self.metrics.increment_prompt_deleted()
        self.config.logger.info(f"Prompt deleted: {prompt.id} ({prompt.name})")

    def list_prompts(self, request: Optional[ListPromptsRequest] = None) -> ListPromptsResponse:
        """
        List prompts matching the request filters.

        All tags in ``tags`` must be present on a prompt. ``query`` keeps prompts with any match in
        ``search_fields``. Results are ordered by ``order_by`` (name, created_at or updated_at) and
        paged with ``offset_N`` tokens.
        """
        request = request or ListPromptsRequest()
        if request.order_by and request.order_by not in ORDER_FIELDS:
            raise InvalidRequestError("order_by", f"must be one of {', '.join(ORDER_FIELDS)}")

        with self._lock:
            prompts = [p.model_copy(deep=True) for p in self._prompts.values()]

        prompts = [
            p
            for p in prompts
            if _matches_filters(
                p,
                request.category,
                request.tags,
                request.created_by,
                request.created_after,
                request.created_before,
                request.is_public,
            )
        ]
        if request.query:
            prompts = [p for p in prompts if calculate_search_score(p, request.query, request.search_fields)[0] > 0]
        if request.order_by:
            prompts.sort(key=lambda p: _order_key(p, request.order_by), reverse=request.order_desc)

        page, next_token = paginate(prompts, request.page_size, request.page_token, DEFAULT_LIST_PAGE_SIZE, MAX_LIST_PAGE_SIZE)
        if request.include_versions:
            for prompt in page:
                prompt.metadata["versions"] = [v.model_dump(mode="json") for v in self._version_history(prompt.id)]

        self.metrics.increment_prompts_listed(len(page))
        return ListPromptsResponse(prompts=page, next_page_token=next_token, total_size=len(prompts))

    # =====================
    # Versions
    # =====================

    def create_version(self, request: CreateVersionRequest) -> PromptVersion:
        """
        Record a new active version and make its content the prompt's current content.

        Raises:
            PromptNotFoundError: If the prompt does not exist.
            InvalidTemplateError: If the version template is invalid.
        """
        if not request.prompt_id:
            raise InvalidRequestError("prompt_id", "cannot be empty")
        if request.prompt is None:
            raise InvalidRequestError("prompt", "cannot be None")

        existing = self._lookup(request.prompt_id)
        content = request.prompt.model_copy(deep=True)
        content.variables = self._declared_variables(content)
        self.processor.validate_template(content.template, content.variables)

        with self._lock:
            version = self._new_version(
                existing.id, content, request.version_name, request.changelog, request.branch_name
            )
            current = self._overlay_version(existing, version)
            current.updated_at = _now()
            current.etag = compute_etag(current)
            self._store(current)

        self.config.logger.info(f"Prompt version created: {version.version_id} for {existing.id}")
        return version

    def get_version(self, prompt_id: str, version_id: str) -> PromptVersion:
        """
        Raises:
            VersionNotFoundError: If the prompt has no such version.
        """
        if not prompt_id:
            raise InvalidRequestError("prompt_id", "cannot be empty")
        if not version_id:
            raise InvalidRequestError("version_id", "cannot be empty")

        version = next((v for v in self._version_history(prompt_id) if v.version_id == version_id), None)
        if version is None:
            raise VersionNotFoundError(prompt_id, version_id)
        return version

    def list_versions(self, request: ListVersionsRequest) -> ListVersionsResponse:
        if not request.prompt_id:
            raise InvalidRequestError("prompt_id", "cannot be empty")

        created_after, created_before = _as_utc(request.created_after), _as_utc(request.created_before)
        versions = [
            v
            for v in self._version_history(request.prompt_id)
            if not (created_after and v.created_at < created_after)
            and not (created_before and v.created_at > created_before)
            and not (request.branch_name and v.branch_name != request.branch_name)
        ]
        page, next_token = paginate(
            versions, request.page_size, request.page_token, DEFAULT_LIST_PAGE_SIZE, MAX_VERSION_PAGE_SIZE
        )
        return ListVersionsResponse(versions=page, next_page_token=next_token, total_size=len(versions))

    def restore_version(self, request: RestoreVersionRequest) -> PromptVersion:
        """
        Make an earlier version current again by recording it as a new version.

        Returns:
            PromptVersion: The new version holding the restored content.
        """
        if not request.prompt_id:
            raise InvalidRequestError("prompt_id", "cannot be empty")
        if not request.version_id:
            raise InvalidRequestError("version_id", "cannot be empty")

        source = self.get_version(request.prompt_id, request.version_id)
        existing = self._lookup(request.prompt_id)
        restored = self._overlay_version(existing, source)

        with self._lock:
            version = self._new_version(
                existing.id,
                restored,
                request.new_version_name or f"restored-from-{request.version_id}",
                request.changelog or f"Restored from version {request.version_id}",
                source.branch_name,
            )
            restored.version_id = version.version_id
            restored.version_name = version.version_name
            self.update_prompt(UpdatePromptRequest(prompt=restored))

        self.metrics.increment_version_restored()
        self.config.logger.info(f"Restored prompt {existing.id} to version {request.version_id}")
        return version

    def delete_version(self, prompt_id: str, version_id: str):
        """
        Raises:
            InvalidRequestError: If the version is the active one.
        """
        version = self.get_version(prompt_id, version_id)
        if version.is_active:
            raise InvalidRequestError("version_id", "cannot delete the active version")

        with self._lock:
            self._versions[prompt_id] = [v for v in self._versions.get(prompt_id, []) if v.version_id != version_id]
        self.config.logger.info(f"Prompt version deleted: {version_id} of {prompt_id}")

    # =====================
    # Templates
    # =====================

    def _validate_apply_request(self, request: ApplyTemplateRequest):
        if request is None:
            raise InvalidRequestError("request", "cannot be None")
        if not request.template and not request.prompt_id and not request.name:
            raise InvalidRequestError("template_or_prompt", "must specify either template content or prompt identifier")
        if request.variables is None:
            raise InvalidRequestError("variables", "cannot be None")

    def _check_variables(
        self, template: str, declared: List[str], supplied: Dict[str, Any], strict: bool
    ) -> List[str]:
        missing = [name for name in self.processor.extract_variables(template) if name not in supplied]
        if missing and strict:
            raise MissingVariablesError(missing)
        if missing:
            self.config.logger.warning(f"Missing template variables: {missing}")

        if strict and declared:
            undeclared = [name for name in supplied if name not in declared]
            if undeclared:
                raise InvalidVariableError("undeclared", f"undeclared variables: {undeclared}")

        return [f"missing variable: {name}" for name in missing]

    def apply_template(self, request: ApplyTemplateRequest) -> ApplyTemplateResponse:
        """
        Render a template, given inline or by prompt reference.

        With ``validate_variables``, missing variables raise in ``strict_mode`` and are reported in
        ``validation_errors`` otherwise; in strict mode supplied variables must also be declared
        on the prompt.

        Raises:
            InvalidRequestError: If neither a template nor a prompt reference is given.
            MissingVariablesError: For missing variables in strict mode.
            InvalidVariableError: For undeclared variables in strict mode.
        """
        tracker = self.metrics.start_operation("apply_template")
        try:
            self._validate_apply_request(request)
        except PromptError:
            tracker.finish_with_error("validation")
            raise

        template, declared = request.template, []
        if not template:
            try:
                prompt = self.get_prompt(
                    GetPromptRequest(prompt_id=request.prompt_id, name=request.name, version_id=request.version_id)
                )
            except PromptError:
                tracker.finish_with_error("cloud")
                raise
            template, declared = prompt.template, prompt.variables

        validation_errors = []
        if request.validate_variables:
            try:
                validation_errors = self._check_variables(template, declared, request.variables, request.strict_mode)
            except PromptError:
                tracker.finish_with_error("validation")
                raise

        try:
            response = self.processor.apply_variables(template, request.variables)
        except PromptError:
            tracker.finish_with_error("template")
            raise
        response.validation_errors.extend(validation_errors)

        self.metrics.increment_template_applied()
        self.metrics.increment_variables_applied(len(request.variables))
        tracker.finish()
        self.config.logger.debug(
            f"apply_template called | prompt_id: {request.prompt_id}, variables: {len(request.variables)}, content_length: {len(response.content)}"
        )
        return response

    def apply_template_to_prompt(self, prompt: Prompt, variables: Dict[str, Any]) -> ApplyTemplateResponse:
        return self.apply_template(
            ApplyTemplateRequest(template=prompt.template, variables=variables, validate_variables=True)
        )

    def apply_template_simple(self, prompt_id: str, variables: Dict[str, Any]) -> str:
        """Render a stored prompt and return only the text."""
        return self.apply_template(ApplyTemplateRequest(prompt_id=prompt_id, variables=variables)).content

    def validate_template(self, template: str, variables: Optional[List[str]] = None) -> TemplateValidationResult:
        return self.processor.validate_template_detailed(template, variables)

    def preview_template(self, template: str, sample_variables: Dict[str, Any]) -> ApplyTemplateResponse:
        """Render with loose validation, so missing variables never raise."""
        preview = TemplateProcessor(self.processor.engine, ValidationMode.LOOSE)
        return preview.apply_variables(template, sample_variables)

    def extract_variables(self, template: str) -> List[str]:
        return self.processor.extract_variables(template)

    def batch_apply_templates(self, requests: List[ApplyTemplateRequest]) -> List[BatchTemplateResult]:
        """Apply each request independently; failures are reported per item."""
        if not requests:
            raise InvalidRequestError("requests", "cannot be empty")

        results = []
        for i, request in enumerate(requests):
            try:
                results.append(BatchTemplateResult(index=i, response=self.apply_template(request), success=True))
            except SDKError as e:
                results.append(BatchTemplateResult(index=i, error=str(e), success=False))
        return results

    def compile_template(self, template: str) -> CompiledTemplate:
        compiled = self._compiler.compile(template)
        self.config.logger.debug(
            f"compile_template called | variables: {len(compiled.variables)}, engine: {compiled.engine.value}"
        )
        return compiled

    def generate_template_preview(self, template: str, sample_variables: Dict[str, Any]) -> TemplatePreview:
        detected = self.processor.extract_variables(template)
        return TemplatePreview(
            template=template,
            sample_variables=sample_variables,
            preview_content=self.preview_template(template, sample_variables).content,
            detected_variables=detected,
            validation_result=self.processor.validate_template_detailed(template, detected),
        )

    def analyze_template(self, template: str, declared: Optional[List[str]] = None) -> TemplateAnalysis:
        return TemplateAnalyzer(self.processor, self.config).analyze(template, declared)

    # =====================
    # Search, batch and transfer
    # =====================

    def search_prompts(self, request: SearchPromptsRequest) -> SearchPromptsResponse:
        """
        Rank prompts by weighted matches of a query.

        Field weights favour names over descriptions, tags and templates. Fuzzy search scores
        partial matches by shared trigrams. Only prompts scoring above zero and at least
        ``min_score`` are returned.

        Raises:
            InvalidRequestError: If the query is empty.
        """
        if not request.query:
            raise InvalidRequestError("query", "search query cannot be empty")

        tracker = self.metrics.start_operation("search_prompts")
        started = time.monotonic()
        with self._lock:
            candidates = [p.model_copy(deep=True) for p in self._prompts.values()]

        results = []
        for prompt in candidates:
            if not _matches_filters(
                prompt,
                request.category,
                request.tags,
                request.created_by,
                request.created_after,
                request.created_before,
                request.is_public,
            ):
                continue
            score, highlights, match_fields = calculate_search_score(
                prompt, request.query, request.search_fields, request.fuzzy_search, request.case_sensitive
            )
            if score > 0 and score >= request.min_score:
                results.append(SearchResult(prompt=prompt, score=score, highlights=highlights, match_fields=match_fields))

        results.sort(key=lambda r: r.score, reverse=request.order_desc)
        try:
            page, next_token = paginate(
                results, request.page_size, request.page_token, DEFAULT_SEARCH_PAGE_SIZE, MAX_SEARCH_PAGE_SIZE
            )
        except PromptError:
            tracker.finish_with_error("validation")
            raise
        tracker.finish()

        self.config.logger.debug(f"search_prompts called | query: {request.query}, results: {len(results)}")
        return SearchPromptsResponse(
            results=page, next_page_token=next_token, total_size=len(results), search_time=time.monotonic() - started
        )

    def batch_create_prompts(self, request: BatchCreatePromptsRequest) -> BatchCreatePromptsResponse:
        """
        Create several prompts. Without ``continue_on_error`` processing stops at the first failure.
        """
        if not request.prompts:
            raise InvalidRequestError("prompts", "cannot be empty")

        response = BatchCreatePromptsResponse()
        for i, prompt in enumerate(request.prompts):
            try:
                created = self.create_prompt(
                    CreatePromptRequest(
                        prompt=prompt, create_version=request.create_versions, validate_template=request.validate_all
                    )
                )
            except SDKError as e:
                response.results.append(BatchOperationResult(index=i, error=str(e), success=False))
                response.failed += 1
                if not request.continue_on_error:
                    break
                continue

            response.results.append(BatchOperationResult(index=i, prompt=created, success=True))
            response.succeeded += 1

        self.config.logger.info(
            f"Batch prompt creation finished: {response.succeeded} succeeded, {response.failed} failed"
        )
        return response

    def _prompts_for_export(self, request: ExportPromptsRequest) -> List[Prompt]:
        if request.prompt_ids or request.names:
            lookups = [GetPromptRequest(prompt_id=i, include_versions=request.include_versions) for i in request.prompt_ids]
            lookups += [GetPromptRequest(name=n, include_versions=request.include_versions) for n in request.names]
            prompts = []
            for lookup in lookups:
                try:
                    prompts.append(self.get_prompt(lookup))
                except PromptNotFoundError:
                    self.config.logger.warning(f"Skipping missing prompt in export: {lookup.prompt_id or lookup.name}")
            return prompts

        prompts, token = [], None
        while True:
            page = self.list_prompts(
                ListPromptsRequest(
                    category=request.category,
                    tags=request.tags,
                    include_versions=request.include_versions,
                    page_size=MAX_LIST_PAGE_SIZE,
                    page_token=token,
                )
            )
            prompts.extend(page.prompts)
            token = page.next_page_token
            if not token:
                return prompts

    def export_prompts(self, request: Optional[ExportPromptsRequest] = None) -> ExportPromptsResponse:
        """Serialize prompts selected by ID, by name, or by category and tags."""
        request = request or ExportPromptsRequest()
        prompts = self._prompts_for_export(request)
        data = dump_prompts(prompts, request.format)

        self.config.logger.info(f"Exported {len(prompts)} prompts as {request.format.value}")
        return ExportPromptsResponse(
            data=data,
            format=request.format,
            prompts=prompts,
            count=len(prompts),
            metadata={
                "exported_at": _now().isoformat(),
                "exported_by": EXPORTED_BY,
                "total_prompts": len(prompts),
                "include_versions": request.include_versions,
            },
        )

    def import_prompts(self, request: ImportPromptsRequest) -> BatchCreatePromptsResponse:
        """
        Create prompts from exported data. With ``overwrite``, prompts sharing a name are replaced.

        Raises:
            InvalidRequestError: If the data is empty.
            ValidationError: If the data cannot be parsed.
        """
        if not request.data:
            raise InvalidRequestError("data", "cannot be empty")

        prompts = load_prompts(request.data, request.format)
        if request.overwrite:
            for prompt in prompts:
                existing = self._find_by_name(prompt.name) if prompt.name else None
                if existing is None and prompt.id:
                    with self._lock:
                        existing = self._prompts.get(prompt.id)
                if existing is not None:
                    self.delete_prompt(DeletePromptRequest(prompt_id=existing.id, force=True))

        return self.batch_create_prompts(
            BatchCreatePromptsRequest(
                prompts=prompts,
                create_versions=request.create_versions,
                validate_all=request.validate_all,
                continue_on_error=request.continue_on_error,
            )
        )

    # =====================
    # Cache and metrics
    # =====================

    def get_cache_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "prompt_cache_size": len(self._cache),
                "version_cache_size": sum(len(v) for v in self._versions.values()),
                "compiled_template_cache_size": self._compiler.cache_size(),
                "cache_expiry": self.cache_expiry.total_seconds(),
                "cache_hit_ratio": self.metrics.get_cache_hit_ratio(),
            }

    def clear_cache(self):
        """Drop cached reads and compiled templates. Stored prompts are kept."""
        with self._lock:
            self._cache.clear()
        self._compiler.clear()
        self.config.logger.info("Prompt cache cleared")

    def get_metrics(self) -> Dict[str, Any]:
        return self.metrics.get_all_metrics()

    def close(self):
        self.clear_cache()
        self.config.logger.info("Prompt service closed")
