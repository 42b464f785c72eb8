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

import json
from datetime import timedelta

import pytest

from vertexai_preview.config import Config
from vertexai_preview.exceptions import ValidationError
from vertexai_preview.prompts import (
    ApplyTemplateRequest,
    BatchCreatePromptsRequest,
    CreatePromptRequest,
    CreateVersionRequest,
    DeletePromptRequest,
    ExportFormat,
    ExportPromptsRequest,
    GetPromptRequest,
    ImportPromptsRequest,
    InvalidRequestError,
    InvalidTemplateError,
    InvalidVariableError,
    ListPromptsRequest,
    ListVersionsRequest,
    MissingVariablesError,
    Prompt,
    PromptAlreadyExistsError,
    PromptNotFoundError,
    PromptService,
    RestoreVersionRequest,
    SearchPromptsRequest,
    UpdatePromptRequest,
    ValidationMode,
    VersionConflictError,
    VersionNotFoundError,
)
from vertexai_preview.prompts.service import compute_etag, paginate, parse_page_token
from vertexai_preview.prompts.template import TemplateProcessor


@pytest.fixture(autouse=True)
def reset_config_singleton():
    """Reset Config singleton before each test."""
    Config._instances = {}
    yield
    Config._instances = {}


@pytest.fixture
def service():
    return PromptService(Config(project="test-project"))


def _create(service, name, template="Hello {name}", **kwargs):
    create_version = kwargs.pop("create_version", True)
    return service.create_prompt(
        CreatePromptRequest(prompt=Prompt(name=name, template=template, **kwargs), create_version=create_version)
    )


# ============================================================================
# Paging helpers
# ============================================================================


def test_parse_page_token():
    assert parse_page_token(None) == 0
    assert parse_page_token("offset_20") == 20
    for token in ("20", "offset_x", "offset_-1"):
        with pytest.raises(InvalidRequestError):
            parse_page_token(token)


def test_paginate():
    items = list(range(5))
    assert paginate(items, 2, None, 50, 100) == ([0, 1], "offset_2")
    assert paginate(items, 2, "offset_4", 50, 100) == ([4], None)
    # Out of range page sizes fall back to the default.
    assert paginate(items, 500, None, 3, 100) == ([0, 1, 2], "offset_3")


def test_service_requires_project(monkeypatch):
    monkeypatch.delenv("GOOGLE_CLOUD_PROJECT", raising=False)
    with pytest.raises(ValidationError):
        PromptService(Config())


# ============================================================================
# Prompt CRUD
# ============================================================================


class TestPromptCrud:
    def test_create_prompt(self, service):
        prompt = _create(service, "greeting", "Hello {name}, from {city}")

        assert prompt.id.startswith("prompt_")
        assert prompt.resource_name == f"projects/test-project/locations/us-central1/prompts/{prompt.id}"
        assert prompt.variables == ["name", "city"]
        assert prompt.version_name == "v1"
        assert prompt.version_id.startswith("version_")
        assert prompt.etag == compute_etag(prompt)
        assert prompt.created_at is not None
        assert service.get_metrics()["operations"]["prompts_created"] == 1

    def test_create_prompt_validation(self, service):
        with pytest.raises(InvalidRequestError):
            service.create_prompt(None)
        with pytest.raises(InvalidRequestError):
            service.create_prompt(CreatePromptRequest())
        with pytest.raises(InvalidRequestError) as exc_info:
            service.create_prompt(CreatePromptRequest(prompt=Prompt(name="empty")))
        assert exc_info.value.details == {"field": "template", "reason": "cannot be empty"}

    def test_create_prompt_validates_template(self, service):
        with pytest.raises(InvalidTemplateError):
            service.create_prompt(
                CreatePromptRequest(prompt=Prompt(name="bad", template="Hello {name"), validate_template=True)
            )

    def test_create_duplicate_name(self, service):
        _create(service, "greeting")
        with pytest.raises(PromptAlreadyExistsError):
            _create(service, "greeting")

    def test_dry_run_does_not_store(self, service):
        prompt = service.create_prompt(
            CreatePromptRequest(prompt=Prompt(name="draft", template="Hi {name}"), dry_run=True)
        )
        assert prompt.id is not None
        assert service.list_prompts().total_size == 0

    def test_get_prompt_by_id_and_name(self, service):
        created = _create(service, "greeting")

        assert service.get_prompt(GetPromptRequest(prompt_id=created.id)).name == "greeting"
        assert service.get_prompt(GetPromptRequest(name="greeting")).id == created.id
        with pytest.raises(PromptNotFoundError):
            service.get_prompt(GetPromptRequest(prompt_id="prompt_missing"))
        with pytest.raises(InvalidRequestError):
            service.get_prompt(GetPromptRequest())

    def test_get_prompt_uses_cache(self, service):
        created = _create(service, "greeting")
        service.get_prompt(GetPromptRequest(prompt_id=created.id))
        service.get_prompt(GetPromptRequest(prompt_id=created.id))

        stats = service.get_cache_stats()
        assert stats["prompt_cache_size"] == 1
        assert stats["cache_hit_ratio"] == 0.5
        assert stats["cache_expiry"] == timedelta(minutes=30).total_seconds()

    def test_returned_prompt_is_a_copy(self, service):
        created = _create(service, "greeting")
        fetched = service.get_prompt(GetPromptRequest(prompt_id=created.id))
        fetched.template = "changed"
        assert service.get_prompt(GetPromptRequest(prompt_id=created.id)).template == "Hello {name}"

    def test_get_prompt_with_versions_and_usage(self, service):
        created = _create(service, "greeting")
        prompt = service.get_prompt(GetPromptRequest(prompt_id=created.id, include_versions=True, include_usage=True))

        assert len(prompt.metadata["versions"]) == 1
        assert prompt.metadata["usage"]["prompt_id"] == created.id
        assert created.version_id in prompt.metadata["usage"]["version_metrics"]

    def test_update_prompt(self, service):
        created = _create(service, "greeting")
        updated = service.update_prompt(
            UpdatePromptRequest(
                prompt=Prompt(id=created.id, name="greeting", template="Hi {name}!"),
                if_match_etag=created.etag,
            )
        )

        assert updated.template == "Hi {name}!"
        assert updated.created_at == created.created_at
        assert updated.version_id == created.version_id
        assert updated.etag != created.etag

    def test_update_prompt_etag_conflict(self, service):
        created = _create(service, "greeting")
        with pytest.raises(VersionConflictError) as exc_info:
            service.update_prompt(
                UpdatePromptRequest(prompt=Prompt(id=created.id, template="Hi"), if_match_etag="stale")
            )
        assert exc_info.value.details["expected_version"] == "stale"

    def test_update_prompt_rename_conflict(self, service):
        _create(service, "first")
        second = _create(service, "second")
        with pytest.raises(PromptAlreadyExistsError):
            service.update_prompt(UpdatePromptRequest(prompt=Prompt(id=second.id, name="first", template="x")))

    def test_update_with_new_version(self, service):
        created = _create(service, "greeting")
        updated = service.update_prompt(
            UpdatePromptRequest(
                prompt=Prompt(id=created.id, template="Hey {name}"), create_new_version=True, changelog="tone"
            )
        )

        assert updated.version_name == "v2"
        versions = service.list_versions(ListVersionsRequest(prompt_id=created.id)).versions
        assert [v.is_active for v in versions] == [False, True]
        assert versions[1].parent_version_id == created.version_id
        assert versions[1].changelog == "tone"

    def test_delete_prompt(self, service):
        created = _create(service, "greeting")
        with pytest.raises(VersionConflictError):
            service.delete_prompt(DeletePromptRequest(prompt_id=created.id, if_match_etag="stale"))

        service.delete_prompt(DeletePromptRequest(name="greeting", delete_versions=True))
        with pytest.raises(PromptNotFoundError):
            service.get_prompt(GetPromptRequest(prompt_id=created.id))
        assert service.get_cache_stats()["version_cache_size"] == 0


# ============================================================================
# Listing
# ============================================================================


class TestListPrompts:
    def test_filters(self, service):
        _create(service, "a", category="support", tags=["en", "chat"])
        _create(service, "b", category="support", tags=["en"], is_public=True)
        _create(service, "c", category="billing", tags=["chat"])

        assert service.list_prompts(ListPromptsRequest(category="support")).total_size == 2
        names = [p.name for p in service.list_prompts(ListPromptsRequest(tags=["en", "chat"])).prompts]
        assert names == ["a"]
        assert [p.name for p in service.list_prompts(ListPromptsRequest(is_public=True)).prompts] == ["b"]

    def test_query_and_ordering(self, service):
        _create(service, "beta", description="summary bot")
        _create(service, "alpha", description="summary helper")
        _create(service, "gamma", description="translator")

        response = service.list_prompts(ListPromptsRequest(query="summary", order_by="name"))
        assert [p.name for p in response.prompts] == ["alpha", "beta"]

        response = service.list_prompts(ListPromptsRequest(order_by="name", order_desc=True))
        assert [p.name for p in response.prompts] == ["gamma", "beta", "alpha"]

    def test_invalid_order_by(self, service):
        with pytest.raises(InvalidRequestError):
            service.list_prompts(ListPromptsRequest(order_by="template"))

    def test_pagination(self, service):
        for name in ("a", "b", "c"):
            _create(service, name)

        first = service.list_prompts(ListPromptsRequest(page_size=2, order_by="name"))
        assert [p.name for p in first.prompts] == ["a", "b"]
        assert first.next_page_token == "offset_2"
        assert first.total_size == 3

        second = service.list_prompts(
            ListPromptsRequest(page_size=2, order_by="name", page_token=first.next_page_token)
        )
        assert [p.name for p in second.prompts] == ["c"]
        assert second.next_page_token is None

    def test_include_versions(self, service):
        _create(service, "a")
        prompt = service.list_prompts(ListPromptsRequest(include_versions=True)).prompts[0]
        assert len(prompt.metadata["versions"]) == 1


# ============================================================================
# Versions
# ============================================================================


class TestVersions:
    def test_create_and_get_version(self, service):
        created = _create(service, "greeting")
        version = service.create_version(
            CreateVersionRequest(prompt_id=created.id, prompt=Prompt(template="Howdy {name}"), branch_name="exp")
        )

        assert version.version_name == "v2"
        assert version.is_active
        assert service.get_version(created.id, version.version_id).template == "Howdy {name}"
        assert service.get_prompt(GetPromptRequest(prompt_id=created.id)).template == "Howdy {name}"
        assert service.get_metrics()["operations"]["versions_created"] == 2

        branch = service.list_versions(ListVersionsRequest(prompt_id=created.id, branch_name="exp"))
        assert [v.version_id for v in branch.versions] == [version.version_id]

    def test_create_version_invalid_template(self, service):
        created = _create(service, "greeting")
        with pytest.raises(InvalidTemplateError):
            service.create_version(CreateVersionRequest(prompt_id=created.id, prompt=Prompt(template="{oops")))
        with pytest.raises(InvalidRequestError):
            service.create_version(CreateVersionRequest(prompt=Prompt(template="x")))

    def test_get_prompt_at_version(self, service):
        created = _create(service, "greeting")
        service.create_version(CreateVersionRequest(prompt_id=created.id, prompt=Prompt(template="New {name}")))

        old = service.get_prompt(GetPromptRequest(prompt_id=created.id, version_id=created.version_id))
        assert old.template == "Hello {name}"
        assert old.version_name == "v1"

        with pytest.raises(VersionNotFoundError):
            service.get_prompt(GetPromptRequest(prompt_id=created.id, version_id="version_missing"))

    def test_restore_version(self, service):
        created = _create(service, "greeting")
        service.create_version(CreateVersionRequest(prompt_id=created.id, prompt=Prompt(template="New {name}")))

        restored = service.restore_version(RestoreVersionRequest(prompt_id=created.id, version_id=created.version_id))

        assert restored.version_name == f"restored-from-{created.version_id}"
        assert restored.changelog == f"Restored from version {created.version_id}"
        current = service.get_prompt(GetPromptRequest(prompt_id=created.id))
        assert current.template == "Hello {name}"
        assert current.version_id == restored.version_id
        assert service.list_versions(ListVersionsRequest(prompt_id=created.id)).total_size == 3
        assert service.get_metrics()["operations"]["versions_restored"] == 1

    def test_delete_version(self, service):
        created = _create(service, "greeting")
        with pytest.raises(InvalidRequestError):
            service.delete_version(created.id, created.version_id)

        service.create_version(CreateVersionRequest(prompt_id=created.id, prompt=Prompt(template="New {name}")))
        service.delete_version(created.id, created.version_id)
        with pytest.raises(VersionNotFoundError):
            service.get_version(created.id, created.version_id)


# ============================================================================
# Templates
# ============================================================================


class TestApplyTemplate:
    def test_apply_inline_template(self, service):
        response = service.apply_template(ApplyTemplateRequest(template="Hi {name}", variables={"name": "Ada"}))
        assert response.content == "Hi Ada"
        metrics = service.get_metrics()
        assert metrics["operations"]["templates_applied"] == 1
        assert metrics["operations"]["variables_applied"] == 1

    def test_apply_stored_prompt(self, service):
        created = _create(service, "greeting")
        assert service.apply_template_simple(created.id, {"name": "Ada"}) == "Hello Ada"

    def test_apply_requires_template_or_prompt(self, service):
        with pytest.raises(InvalidRequestError):
            service.apply_template(ApplyTemplateRequest(variables={}))
        with pytest.raises(InvalidRequestError):
            service.apply_template(ApplyTemplateRequest(template="x"))
        assert service.get_metrics()["errors"]["validation_errors"] == 2

    def test_apply_missing_prompt_counts_cloud_error(self, service):
        with pytest.raises(PromptNotFoundError):
            service.apply_template(ApplyTemplateRequest(prompt_id="prompt_missing", variables={}))
        assert service.get_metrics()["errors"]["cloud_errors"] == 1

    def test_validate_variables_warn(self, service):
        response = service.apply_template(
            ApplyTemplateRequest(template="Hi {name} in {city}", variables={"name": "Ada"}, validate_variables=True)
        )
        assert response.validation_errors == ["missing variable: city"]
        assert response.missing_variables == ["city"]

    def test_validate_variables_strict(self, service):
        created = _create(service, "greeting")
        with pytest.raises(MissingVariablesError):
            service.apply_template(
                ApplyTemplateRequest(prompt_id=created.id, variables={}, validate_variables=True, strict_mode=True)
            )
        with pytest.raises(InvalidVariableError):
            service.apply_template(
                ApplyTemplateRequest(
                    prompt_id=created.id,
                    variables={"name": "Ada", "extra": 1},
                    validate_variables=True,
                    strict_mode=True,
                )
            )

    def test_strict_processor(self):
        service = PromptService(
            Config(project="test-project"), processor=TemplateProcessor(mode=ValidationMode.STRICT)
        )
        with pytest.raises(MissingVariablesError):
            service.apply_template(ApplyTemplateRequest(template="Hi {name}", variables={}))
        assert service.get_metrics()["errors"]["template_errors"] == 1

    def test_batch_apply_templates(self, service):
        results = service.batch_apply_templates(
            [
                ApplyTemplateRequest(template="Hi {name}", variables={"name": "Ada"}),
                ApplyTemplateRequest(prompt_id="prompt_missing", variables={}),
            ]
        )
        assert results[0].success and results[0].response.content == "Hi Ada"
        assert not results[1].success
        assert "PROMPT_NOT_FOUND" in results[1].error

        with pytest.raises(InvalidRequestError):
            service.batch_apply_templates([])

    def test_preview_and_analysis(self, service):
        preview = service.generate_template_preview("Hi {name} from {city}", {"name": "Ada"})
        assert preview.preview_content == "Hi Ada from {city}"
        assert preview.detected_variables == ["name", "city"]
        assert preview.validation_result.is_valid

        assert service.extract_variables("{a} {b}") == ["a", "b"]
        assert not service.validate_template("{a").is_valid
        assert service.analyze_template("Hi {name}").variable_count == 1

    def test_compile_template_and_clear_cache(self, service):
        compiled = service.compile_template("Hi {name}")
        assert compiled.execute({"name": "Ada"}).content == "Hi Ada"
        assert service.get_cache_stats()["compiled_template_cache_size"] == 1

        service.clear_cache()
        assert service.get_cache_stats()["compiled_template_cache_size"] == 0


# ============================================================================
# Search, batch and transfer
# ============================================================================


class TestSearchPrompts:
    @pytest.fixture
    def populated(self, service):
        _create(service, "customer-greeting", description="Greets customers", tags=["support"])
        _create(service, "billing-summary", template="Invoice for {customer}", category="billing")
        _create(service, "translator", template="Translate {text}")
        return service

    def test_ranked_results(self, populated):
        response = populated.search_prompts(SearchPromptsRequest(query="Customer"))

        assert [r.prompt.name for r in response.results] == ["customer-greeting", "billing-summary"]
        assert response.results[0].score == 5.0
        assert response.results[0].match_fields == ["name", "description"]
        assert response.results[1].score == 1.5
        assert response.results[1].highlights == {"template": ["invoice for {customer}"]}
        assert response.total_size == 2

    def test_min_score_and_filters(self, populated):
        response = populated.search_prompts(SearchPromptsRequest(query="customer", min_score=2.0))
        assert [r.prompt.name for r in response.results] == ["customer-greeting"]

        response = populated.search_prompts(SearchPromptsRequest(query="customer", category="billing"))
        assert [r.prompt.name for r in response.results] == ["billing-summary"]

    def test_case_sensitive_and_fuzzy(self, populated):
        assert populated.search_prompts(SearchPromptsRequest(query="Customer", case_sensitive=True)).total_size == 0
        assert populated.search_prompts(SearchPromptsRequest(query="custmer")).total_size == 0
        assert populated.search_prompts(SearchPromptsRequest(query="custmer", fuzzy_search=True)).total_size > 0

    def test_empty_query(self, service):
        with pytest.raises(InvalidRequestError):
            service.search_prompts(SearchPromptsRequest())


class TestBatchAndTransfer:
    def test_batch_create_stops_on_error(self, service):
        response = service.batch_create_prompts(
            BatchCreatePromptsRequest(
                prompts=[
                    Prompt(name="a", template="x"),
                    Prompt(name="a", template="y"),
                    Prompt(name="b", template="z"),
                ]
            )
        )
        assert response.succeeded == 1
        assert response.failed == 1
        assert len(response.results) == 2

    def test_batch_create_continue_on_error(self, service):
        response = service.batch_create_prompts(
            BatchCreatePromptsRequest(
                prompts=[Prompt(name="a", template="x"), Prompt(name="b"), Prompt(name="c", template="z")],
                continue_on_error=True,
            )
        )
        assert (response.succeeded, response.failed) == (2, 1)
        assert [r.success for r in response.results] == [True, False, True]

    def test_export_and_import(self, service):
        _create(service, "a", category="support", tags=["en"])
        _create(service, "b", category="billing")

        export = service.export_prompts(ExportPromptsRequest(category="support"))
        assert export.count == 1
        assert export.metadata["exported_by"] == "vertexai_preview"
        assert json.loads(export.data)["prompts"][0]["name"] == "a"

        with pytest.raises(PromptAlreadyExistsError):
            service.create_prompt(CreatePromptRequest(prompt=Prompt(name="a", template="x")))

        result = service.import_prompts(ImportPromptsRequest(data=export.data, overwrite=True))
        assert result.succeeded == 1
        assert service.list_prompts().total_size == 2

    def test_export_by_name_skips_missing(self, service):
        _create(service, "a")
        export = service.export_prompts(ExportPromptsRequest(names=["a", "missing"], format=ExportFormat.YAML))
        assert export.count == 1
        assert "name: a" in export.data

    def test_import_validation(self, service):
        with pytest.raises(InvalidRequestError):
            service.import_prompts(ImportPromptsRequest())
        with pytest.raises(ValidationError):
            service.import_prompts(ImportPromptsRequest(data="{not json"))

    def test_close(self, service):
        service.compile_template("Hi {name}")
        service.close()
        assert service.get_cache_stats()["compiled_template_cache_size"] == 0
