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

from unittest.mock import Mock

import pytest

from vertexai_preview.config import Config
from vertexai_preview.exceptions import OperationError, ValidationError
from vertexai_preview.tuning import (
    AutoScalingConfig,
    DeploymentConfig,
    EarlyStoppingConfig,
    HyperparameterOptimizationConfig,
    ListOptions,
    OptimizationAlgorithm,
    ParameterSpec,
    ParameterType,
    PredictRequest,
    ScaleType,
    TuningClient,
    TuningJobState,
    TuningMethod,
    new_dataset_config,
    new_lora_config,
    new_qlora_config,
    new_tuning_config,
    validate_hyperparameter_config,
    validate_lora_config,
    validate_tuning_config,
)
from vertexai_preview.tuning.client import adapter_size_for

PARENT = "projects/p/locations/us-central1"
JOB = f"{PARENT}/tuningJobs/123"
BASE_URL = "https://us-central1-aiplatform.googleapis.com/v1beta1"


@pytest.fixture(autouse=True)
def reset_config_singleton():
    """Reset Config singleton before each test."""
    Config._instances = {}
    yield
    Config._instances = {}


@pytest.fixture
def client():
    """Create a tuning client with a mock _request_handler."""
    client = TuningClient(config=Config(project="p", operation_poll_interval=0.01), token="tok")
    client._request_handler = Mock()
    return client


@pytest.fixture
def lora_config():
    config = new_tuning_config("gemini-2.0-flash-001", TuningMethod.LORA)
    config.dataset = new_dataset_config("gs://bucket/train.jsonl")
    config.lora_config = new_lora_config()
    return config


def _hp_config(**overrides):
    values = dict(
        parameter_specs=[ParameterSpec(name="learning_rate", type=ParameterType.DOUBLE, min_value=1e-5, max_value=1e-3)],
        max_trials=10,
        objective="minimize",
        metric_name="loss",
    )
    values.update(overrides)
    return HyperparameterOptimizationConfig(**values)


# ============================================================================
# Validation and defaults
# ============================================================================


class TestTuningValidation:
    def test_defaults_are_valid(self, lora_config):
        validate_tuning_config(lora_config)

    def test_default_values(self):
        config = new_tuning_config("gemini-2.0-flash-001", TuningMethod.SFT)
        assert config.hyperparameters.learning_rate == 2e-4
        assert config.hyperparameters.epochs == 3
        assert config.resource_config.accelerator_type == "NVIDIA_TESLA_T4"
        lora = new_lora_config()
        assert (lora.rank, lora.alpha) == (16, 32)
        assert new_qlora_config().quantization_config.bnb_4bit_quant_type == "nf4"
        dataset = new_dataset_config("gs://b/t.jsonl")
        assert dataset.training_data.uri == "gs://b/t.jsonl"
        assert dataset.validation_split == 0.1

    @pytest.mark.parametrize(
        "mutate, message",
        [
            (lambda c: setattr(c, "source_model", ""), "source model is required"),
            (lambda c: setattr(c, "dataset", None), "dataset configuration is required"),
            (lambda c: setattr(c.dataset, "training_data", None), "training data is required"),
            (lambda c: setattr(c.dataset.training_data, "uri", ""), "training data URI is required"),
            (lambda c: setattr(c, "lora_config", None), "LoRA config is required for LoRA tuning"),
            (lambda c: setattr(c.lora_config, "rank", 0), "invalid LoRA config: LoRA rank must be positive"),
        ],
    )
    def test_invalid_tuning_config(self, lora_config, mutate, message):
        mutate(lora_config)
        with pytest.raises(ValidationError, match=message):
            validate_tuning_config(lora_config)

    def test_qlora_requires_quantization(self, lora_config):
        lora_config.tuning_method = TuningMethod.QLORA
        lora_config.qlora_config = new_qlora_config()
        validate_tuning_config(lora_config)

        lora_config.qlora_config.quantization_config = None
        with pytest.raises(ValidationError, match="quantization config is required"):
            validate_tuning_config(lora_config)

    def test_lora_validation(self):
        lora = new_lora_config()
        lora.dropout_rate = 1.5
        with pytest.raises(ValidationError, match="dropout rate"):
            validate_lora_config(lora)

        lora = new_lora_config()
        lora.target_modules = []
        with pytest.raises(ValidationError, match="target module"):
            validate_lora_config(lora)

    def test_hyperparameter_validation(self):
        validate_hyperparameter_config(_hp_config())
        with pytest.raises(ValidationError, match="parameter spec"):
            validate_hyperparameter_config(_hp_config(parameter_specs=[]))
        with pytest.raises(ValidationError, match="max trials"):
            validate_hyperparameter_config(_hp_config(max_trials=0))
        with pytest.raises(ValidationError, match="metric name"):
            validate_hyperparameter_config(_hp_config(metric_name=""))
        with pytest.raises(ValidationError, match="objective"):
            validate_hyperparameter_config(_hp_config(objective="best"))

    @pytest.mark.parametrize(
        "size, expected",
        [(None, None), (0, None), (1, "ADAPTER_SIZE_ONE"), (5, "ADAPTER_SIZE_FOUR"), (16, "ADAPTER_SIZE_SIXTEEN"),
         (64, "ADAPTER_SIZE_THIRTY_TWO")],
    )
    def test_adapter_size_for(self, size, expected):
        assert adapter_size_for(size) == expected


# ============================================================================
# Tuning jobs
# ============================================================================


class TestTuningJobs:
    def test_create_tuning_job(self, client, lora_config):
        client._request_handler.request.return_value = {
            "name": JOB,
            "tunedModelDisplayName": "support-bot",
            "baseModel": "gemini-2.0-flash-001",
            "state": "JOB_STATE_PENDING",
        }

        job = client.create_tuning_job("support-bot", lora_config)

        assert job.name == JOB
        assert job.state == TuningJobState.PENDING
        assert job.display_name == "support-bot"
        assert job.config is lora_config

        call_args = client._request_handler.request.call_args
        assert call_args.kwargs["method"] == "POST"
        assert call_args.kwargs["url"] == f"{BASE_URL}/{PARENT}/tuningJobs"
        assert call_args.kwargs["json_data"] == {
            "baseModel": "gemini-2.0-flash-001",
            "tunedModelDisplayName": "support-bot",
            "supervisedTuningSpec": {
                "trainingDatasetUri": "gs://bucket/train.jsonl",
                "hyperParameters": {"epochCount": "3", "adapterSize": "ADAPTER_SIZE_SIXTEEN"},
            },
        }

    def test_create_tuning_job_invalid_config(self, client, lora_config):
        lora_config.lora_config = None
        with pytest.raises(ValidationError, match="invalid config: LoRA config is required"):
            client.create_tuning_job("job", lora_config)
        client._request_handler.request.assert_not_called()

    def test_create_tuning_job_requires_name(self, client, lora_config):
        with pytest.raises(ValidationError, match="tuning job name is required"):
            client.create_tuning_job("", lora_config)

    def test_get_tuning_job_by_id(self, client):
        client._request_handler.request.return_value = {"name": JOB, "state": "JOB_STATE_RUNNING"}

        job = client.get_tuning_job("123")

        assert job.state == TuningJobState.RUNNING
        assert client._request_handler.request.call_args.kwargs["url"] == f"{BASE_URL}/{JOB}"

    def test_list_tuning_jobs(self, client):
        client._request_handler.request.return_value = {"tuningJobs": [{"name": JOB}], "nextPageToken": "n"}

        result = client.list_tuning_jobs(ListOptions(filter='state="JOB_STATE_RUNNING"', page_size=10))

        assert [j.name for j in result.tuning_jobs] == [JOB]
        assert result.next_page_token == "n"
        assert client._request_handler.request.call_args.kwargs["params"] == {
            "filter": 'state="JOB_STATE_RUNNING"',
            "pageSize": 10,
        }

    def test_cancel_running_job(self, client):
        client._request_handler.request.side_effect = [{"name": JOB, "state": "JOB_STATE_RUNNING"}, {}]

        client.cancel_tuning_job(JOB)

        call_args = client._request_handler.request.call_args
        assert call_args.kwargs["method"] == "POST"
        assert call_args.kwargs["url"] == f"{BASE_URL}/{JOB}:cancel"

    def test_cancel_finished_job(self, client):
        client._request_handler.request.return_value = {"name": JOB, "state": "JOB_STATE_SUCCEEDED"}

        with pytest.raises(ValidationError, match="cannot cancel job in state JOB_STATE_SUCCEEDED"):
            client.cancel_tuning_job(JOB)
        assert client._request_handler.request.call_count == 1

    def test_wait_for_completion(self, client):
        client._request_handler.request.side_effect = [
            {"name": JOB, "state": "JOB_STATE_RUNNING"},
            {"name": JOB, "state": "JOB_STATE_SUCCEEDED"},
        ]

        job = client.wait_for_completion(JOB, timeout=5, poll_interval=0.01)

        assert job.state == TuningJobState.SUCCEEDED

    def test_wait_for_completion_failed(self, client):
        client._request_handler.request.return_value = {
            "name": JOB,
            "state": "JOB_STATE_FAILED",
            "error": {"code": 3, "message": "bad dataset"},
        }

        with pytest.raises(OperationError, match="tuning job failed: bad dataset"):
            client.wait_for_completion(JOB, timeout=5, poll_interval=0.01)

    def test_wait_for_completion_cancelled(self, client):
        client._request_handler.request.return_value = {"name": JOB, "state": "JOB_STATE_CANCELLED"}

        with pytest.raises(OperationError, match="tuning job was cancelled"):
            client.wait_for_completion(JOB, timeout=5, poll_interval=0.01)

    def test_wait_for_completion_timeout(self, client):
        client._request_handler.request.return_value = {"name": JOB, "state": "JOB_STATE_RUNNING"}

        with pytest.raises(OperationError, match="timeout waiting for tuning job"):
            client.wait_for_completion(JOB, timeout=0.05, poll_interval=0.01)

    def test_get_training_progress(self, client):
        client._request_handler.request.return_value = {
            "name": JOB,
            "trainingProgress": {"currentEpoch": 2, "totalEpochs": 3, "trainingLoss": 0.25},
        }

        progress = client.get_training_progress(JOB)

        assert progress.current_epoch == 2
        assert progress.training_loss == 0.25

    def test_get_training_progress_missing(self, client):
        client._request_handler.request.return_value = {"name": JOB}
        with pytest.raises(ValidationError, match="no training progress"):
            client.get_training_progress(JOB)


# ============================================================================
# Models and serving
# ============================================================================


class TestTunedModels:
    def test_get_tuned_model(self, client):
        model_name = f"{PARENT}/models/m1"
        client._request_handler.request.side_effect = [
            {
                "name": JOB,
                "state": "JOB_STATE_SUCCEEDED",
                "baseModel": "gemini-2.0-flash-001",
                "tunedModel": {"model": model_name},
            },
            {"name": model_name, "displayName": "support-bot"},
        ]

        model = client.get_tuned_model(JOB)

        assert model.name == model_name
        assert model.source_model == "gemini-2.0-flash-001"
        assert client._request_handler.request.call_args.kwargs["url"] == f"{BASE_URL}/{model_name}"

    def test_get_tuned_model_requires_success(self, client):
        client._request_handler.request.return_value = {"name": JOB, "state": "JOB_STATE_RUNNING"}
        with pytest.raises(ValidationError, match="has not completed successfully"):
            client.get_tuned_model(JOB)

    def test_deploy_model(self, client):
        model_name = f"{PARENT}/models/m1"
        endpoint_name = f"{PARENT}/endpoints/e1"
        client._request_handler.request.side_effect = [
            {"name": f"{PARENT}/operations/1", "done": True, "response": {"name": endpoint_name}},
            {"name": f"{PARENT}/operations/2", "done": True},
        ]

        endpoint = client.deploy_model(
            model_name,
            DeploymentConfig(
                machine_type="g2-standard-8",
                auto_scaling=AutoScalingConfig(
                    metric_name="aiplatform.googleapis.com/prediction/online/cpu/utilization",
                    target_value=60,
                    min_replicas=1,
                    max_replicas=3,
                ),
            ),
        )

        assert endpoint.name == endpoint_name
        assert endpoint.predict_url == f"{BASE_URL}/{endpoint_name}:predict"

        create_call, deploy_call = client._request_handler.request.call_args_list
        assert create_call.kwargs["json_data"]["displayName"] == "m1-endpoint"
        assert deploy_call.kwargs["url"] == f"{BASE_URL}/{endpoint_name}:deployModel"
        body = deploy_call.kwargs["json_data"]
        assert body["trafficSplit"] == {"0": 100}
        resources = body["deployedModel"]["dedicatedResources"]
        assert resources["machineSpec"] == {"machineType": "g2-standard-8"}
        assert resources["maxReplicaCount"] == 3
        assert resources["autoscalingMetricSpecs"][0]["target"] == 60

    def test_predict(self, client):
        endpoint_name = f"{PARENT}/endpoints/e1"
        client._request_handler.request.return_value = {"predictions": ["hi"], "deployedModelId": "d1"}

        response = client.predict(endpoint_name, PredictRequest(instances=[{"prompt": "hello"}]))

        assert response.predictions == ["hi"]
        assert response.deployed_model_id == "d1"
        assert client._request_handler.request.call_args.kwargs["json_data"] == {"instances": [{"prompt": "hello"}]}

    def test_predict_requires_instances(self, client):
        with pytest.raises(ValidationError, match="at least one instance"):
            client.predict(f"{PARENT}/endpoints/e1", PredictRequest())


class TestHyperparameterTuning:
    def test_create_hyperparameter_tuning_job(self, client, lora_config):
        client._request_handler.request.return_value = {"name": f"{PARENT}/hyperparameterTuningJobs/h1"}
        hp_config = _hp_config(
            parameter_specs=[
                ParameterSpec(
                    name="learning_rate", type=ParameterType.DOUBLE, min_value=1e-5, max_value=1e-3,
                    scale_type=ScaleType.LOG,
                ),
                ParameterSpec(name="batch_size", type=ParameterType.INTEGER, min_value=4, max_value=32),
                ParameterSpec(name="optimizer", type=ParameterType.CATEGORICAL, categorical_values=["adam", "sgd"]),
            ],
            algorithm=OptimizationAlgorithm.RANDOM,
            max_parallel_trials=2,
            early_stopping_config=EarlyStoppingConfig(use_early_stopping=True),
        )

        job = client.create_hyperparameter_tuning_job("hp-search", lora_config, hp_config)

        assert job.config is lora_config
        assert job.description == "Hyperparameter optimization for gemini-2.0-flash-001"
        call_args = client._request_handler.request.call_args
        assert call_args.kwargs["url"] == f"{BASE_URL}/{PARENT}/hyperparameterTuningJobs"
        body = call_args.kwargs["json_data"]
        assert body["displayName"] == "hp-search"
        assert body["maxTrialCount"] == 10
        assert body["parallelTrialCount"] == 2
        study = body["studySpec"]
        assert study["metrics"] == [{"metricId": "loss", "goal": "MINIMIZE"}]
        assert study["algorithm"] == "RANDOM_SEARCH"
        assert "medianAutomatedStoppingSpec" in study
        assert study["parameters"][0]["scaleType"] == "UNIT_LOG_SCALE"
        assert study["parameters"][1]["integerValueSpec"] == {"minValue": "4", "maxValue": "32"}
        assert study["parameters"][2]["categoricalValueSpec"] == {"values": ["adam", "sgd"]}
        pool = body["trialJobSpec"]["workerPoolSpecs"][0]
        assert pool["machineSpec"]["acceleratorType"] == "NVIDIA_TESLA_T4"
        assert pool["diskSpec"] == {"bootDiskType": "pd-ssd", "bootDiskSizeGb": 100}

    def test_invalid_hyperparameter_config(self, client, lora_config):
        with pytest.raises(ValidationError, match="invalid hyperparameter config"):
            client.create_hyperparameter_tuning_job("hp", lora_config, _hp_config(max_trials=0))
