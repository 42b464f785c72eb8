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

"""Client for supervised and hyperparameter tuning jobs."""

from typing import Any, Dict, Optional

from google.auth.credentials import Credentials
from tenacity import RetryError, Retrying, retry_if_result, stop_after_delay, wait_fixed

from vertexai_preview.auth import GoogleAuth
from vertexai_preview.base_client import BaseClient
from vertexai_preview.config import Config
from vertexai_preview.exceptions import OperationError, ValidationError
from vertexai_preview.request_handler import HttpMethod
from .defaults import validate_hyperparameter_config, validate_tuning_config
from .models import (
    CANCELLABLE_STATES,
    TERMINAL_STATES,
    DeploymentConfig,
    Endpoint,
    HyperparameterOptimizationConfig,
    ListOptions,
    ListTuningJobsResponse,
    OptimizationAlgorithm,
    ParameterType,
    PredictRequest,
    PredictResponse,
    TrainingProgress,
    TunedModel,
    TuningConfig,
    TuningJob,
    TuningJobState,
)
from .routes import (
    cancel_tuning_job,
    deploy_model,
    endpoints,
    hyperparameter_tuning_jobs,
    predict,
    tuning_job,
    tuning_jobs,
)

ADAPTER_SIZES = {
    1: "ADAPTER_SIZE_ONE",
    2: "ADAPTER_SIZE_TWO",
    4: "ADAPTER_SIZE_FOUR",
    8: "ADAPTER_SIZE_EIGHT",
    16: "ADAPTER_SIZE_SIXTEEN",
    32: "ADAPTER_SIZE_THIRTY_TWO",
}

STUDY_ALGORITHMS = {
    OptimizationAlgorithm.BAYESIAN: "ALGORITHM_UNSPECIFIED",
    OptimizationAlgorithm.GRID: "GRID_SEARCH",
    OptimizationAlgorithm.RANDOM: "RANDOM_SEARCH",
}

DEFAULT_POLL_INTERVAL = 10
DEFAULT_WAIT_TIMEOUT = 24 * 60 * 60


def adapter_size_for(size: Optional[int]) -> Optional[str]:
    """Largest supported adapter size not above the requested one."""
    if not size or size <= 0:
        return None

    eligible = [s for s in ADAPTER_SIZES if s <= size]
    return ADAPTER_SIZES[max(eligible)] if eligible else ADAPTER_SIZES[1]


class TuningClient(BaseClient):
    """
    Client for fine-tuning models and serving the results.

    Typical Usage:
        ```python
        from vertexai_preview import Config
        from vertexai_preview.tuning import (
            TuningClient, TuningMethod, new_tuning_config, new_dataset_config, new_lora_config
        )

        client = TuningClient(config=Config(project="my-project"))
        config = new_tuning_config("gemini-2.0-flash-001", TuningMethod.LORA)
        config.dataset = new_dataset_config("gs://my-bucket/train.jsonl")
        config.lora_config = new_lora_config()

        job = client.create_tuning_job("support-bot", config)
        job = client.wait_for_completion(job.name)
        model = client.get_tuned_model(job.name)
        ```
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        credentials: Optional[Credentials] = None,
        token: Optional[str] = None,
        request_handler=None,
    ):
        super().__init__(GoogleAuth(token=token, credentials=credentials), config, request_handler)

    def _job_path(self, name: str) -> str:
        if not name:
            raise ValidationError("tuning job name is required")

        return name if name.startswith("projects/") else tuning_job(self.parent, name)

    def _hyperparameters_body(self, config: TuningConfig) -> Dict[str, Any]:
        body = {}
        hp = config.hyperparameters
        if hp is not None:
            if hp.epochs:
                body["epochCount"] = str(hp.epochs)
            if hp.learning_rate_multiplier:
                body["learningRateMultiplier"] = hp.learning_rate_multiplier

        lora = config.lora_config
        if lora is None and config.qlora_config is not None:
            lora = config.qlora_config.lora_config
        size = hp.adapter_size if hp is not None and hp.adapter_size else (lora.rank if lora else None)
        adapter_size = adapter_size_for(size)
        if adapter_size:
            body["adapterSize"] = adapter_size

        return body

    def create_tuning_job(self, name: str, config: TuningConfig) -> TuningJob:
        """
        Submit a supervised tuning job.

        Args:
            name (str): Display name of the tuned model when the config has none.
            config (TuningConfig): Tuning configuration.

        Returns:
            TuningJob: The created job, carrying the submitted config.

        Raises:
            ValidationError: If the name is empty or the configuration is invalid.
            ApiError: If the API rejects the job, including when it already exists.
        """
        if not name:
            raise ValidationError("tuning job name is required")
        try:
            validate_tuning_config(config)
        except ValidationError as e:
            raise ValidationError(f"invalid config: {e.message}") from e

        self.config.logger.debug(
            f"create_tuning_job called | name: {name}, source_model: {config.source_model}, method: {config.tuning_method.value}"
        )
        spec = {"trainingDatasetUri": config.dataset.training_data.uri}
        if config.dataset.validation_data is not None and config.dataset.validation_data.uri:
            spec["validationDatasetUri"] = config.dataset.validation_data.uri
        hyperparameters = self._hyperparameters_body(config)
        if hyperparameters:
            spec["hyperParameters"] = hyperparameters

        body = {
            "baseModel": config.source_model,
            "tunedModelDisplayName": config.display_name or name,
            "supervisedTuningSpec": spec,
        }
        if config.description:
            body["description"] = config.description
        if config.labels:
            body["labels"] = config.labels

        res = self.make_request(method=HttpMethod.POST, path=tuning_jobs(self.parent), data=body)
        job = TuningJob.model_validate(res)
        job.config = config
        self.config.logger.info(f"Created tuning job: {job.name}")
        return job

    def get_tuning_job(self, name: str) -> TuningJob:
        """
        Get a tuning job by resource name or job ID.

        Raises:
            NotFoundError: If the job does not exist.
        """
        res = self.make_request(method=HttpMethod.GET, path=self._job_path(name))
        return TuningJob.model_validate(res)

    def list_tuning_jobs(self, options: Optional[ListOptions] = None) -> ListTuningJobsResponse:
        """
        List tuning jobs.

        Args:
            options (ListOptions, optional): Filter expression (e.g. ``state="JOB_STATE_RUNNING"``),
                page size, page token and ordering, passed to the API as-is.
        """
        options = options or ListOptions()
        res = self.make_request(
            method=HttpMethod.GET,
            path=tuning_jobs(self.parent),
            params={
                "filter": options.filter,
                "pageSize": options.page_size,
                "pageToken": options.page_token,
                "orderBy": options.order_by,
            },
        )
        result = ListTuningJobsResponse.model_validate(res)
        self.config.logger.debug(f"Listed {len(result.tuning_jobs)} tuning jobs")
        return result

    def cancel_tuning_job(self, name: str) -> None:
        """
        Cancel a queued, pending or running tuning job.

        Raises:
            ValidationError: If the job is in any other state.
        """
        job = self.get_tuning_job(name)
        if job.state not in CANCELLABLE_STATES:
            raise ValidationError(f"cannot cancel job in state {job.state.value}")

        self.make_request(method=HttpMethod.POST, path=cancel_tuning_job(self._job_path(name)), data={})
        self.config.logger.info(f"Cancelling tuning job: {name}")

    def wait_for_completion(
        self, name: str, timeout: float = DEFAULT_WAIT_TIMEOUT, poll_interval: float = DEFAULT_POLL_INTERVAL
    ) -> TuningJob:
        """
        Poll a tuning job until it reaches a terminal state.

        Returns:
            TuningJob: The succeeded job.

        Raises:
            OperationError: If the job fails, is cancelled, expires or the wait times out.
        """
        retryer = Retrying(
            stop=stop_after_delay(timeout),
            wait=wait_fixed(poll_interval),
            retry=retry_if_result(lambda j: j.state not in TERMINAL_STATES),
            before_sleep=lambda rs: self.config.logger.debug(
                f"Tuning job {name} still {rs.outcome.result().state.value}"
            ),
        )
        try:
            job = retryer(self.get_tuning_job, name)
        except RetryError as e:
            raise OperationError(f"timeout waiting for tuning job {name} to complete", operation_name=name) from e

        if job.state == TuningJobState.SUCCEEDED:
            return job
        if job.state == TuningJobState.CANCELLED:
            raise OperationError("tuning job was cancelled", operation_name=name)

        message = job.error.message if job.error is not None else job.state.value
        raise OperationError(f"tuning job failed: {message}", operation_name=name)

    def get_training_progress(self, name: str) -> TrainingProgress:
        """
        Raises:
            ValidationError: If the job reports no training progress.
        """
        job = self.get_tuning_job(name)
        if job.training_progress is None:
            raise ValidationError(f"no training progress available for job {name}")

        return job.training_progress

    def get_tuned_model(self, job_name: str) -> TunedModel:
        """
        Fetch the model produced by a succeeded tuning job.

        Raises:
            ValidationError: If the job has not succeeded or produced no model.
        """
        job = self.get_tuning_job(job_name)
        if job.state != TuningJobState.SUCCEEDED:
            raise ValidationError("tuning job has not completed successfully")
        if job.tuned_model is None or not job.tuned_model.model:
            raise ValidationError(f"no tuned model available for job {job_name}")

        res = self.make_request(method=HttpMethod.GET, path=job.tuned_model.model)
        model = TunedModel.model_validate(res)
        if not model.source_model:
            model.source_model = job.base_model
        return model

    def deploy_model(self, model_name: str, deployment_config: Optional[DeploymentConfig] = None) -> Endpoint:
        """
        Create an endpoint and deploy a model to it.

        Both steps are long-running operations and are waited on.

        Args:
            model_name (str): Model resource name.
            deployment_config (DeploymentConfig, optional): Machine type, replicas, autoscaling and traffic.

        Returns:
            Endpoint: The endpoint serving the model.
        """
        if not model_name:
            raise ValidationError("model name is required")

        deployment_config = deployment_config or DeploymentConfig()
        model_id = model_name.rsplit("/", 1)[-1]
        endpoint_name = deployment_config.deployment_name or f"{model_id}-endpoint"
        self.config.logger.debug(
            f"deploy_model called | model: {model_name}, endpoint: {endpoint_name}, machine_type: {deployment_config.machine_type}"
        )

        res = self.make_request(
            method=HttpMethod.POST,
            path=endpoints(self.parent),
            data={
                "displayName": endpoint_name,
                "description": f"Deployment endpoint for model {model_name}",
            },
        )
        endpoint = Endpoint.model_validate(self.wait_for_operation(res))

        resources = {
            "machineSpec": {"machineType": deployment_config.machine_type},
            "minReplicaCount": deployment_config.min_replicas,
            "maxReplicaCount": deployment_config.max_replicas,
        }
        auto_scaling = deployment_config.auto_scaling
        if auto_scaling is not None:
            resources["minReplicaCount"] = auto_scaling.min_replicas
            resources["maxReplicaCount"] = auto_scaling.max_replicas
            resources["autoscalingMetricSpecs"] = [
                {"metricName": auto_scaling.metric_name, "target": int(auto_scaling.target_value)}
            ]

        res = self.make_request(
            method=HttpMethod.POST,
            path=deploy_model(endpoint.name),
            data={
                "deployedModel": {
                    "model": model_name,
                    "displayName": endpoint_name,
                    "dedicatedResources": resources,
                },
                "trafficSplit": {"0": deployment_config.traffic_split},
            },
        )
        self.wait_for_operation(res)

        endpoint.predict_url = f"{self.config.base_url}/{predict(endpoint.name)}"
        self.config.logger.info(f"Deployed model {model_name} to {endpoint.name}")
        return endpoint

    def predict(self, endpoint_name: str, request: PredictRequest) -> PredictResponse:
        """Run online prediction against an endpoint."""
        if not endpoint_name:
            raise ValidationError("endpoint name is required")
        if request is None or not request.instances:
            raise ValidationError("at least one instance is required")

        res = self.make_request(method=HttpMethod.POST, path=predict(endpoint_name), data=request.to_body_dict())
        return PredictResponse.model_validate(res)

    def _study_spec(self, hp_config: HyperparameterOptimizationConfig) -> Dict[str, Any]:
        parameters = []
        for spec in hp_config.parameter_specs:
            parameter = {"parameterId": spec.name}
            if spec.type == ParameterType.DOUBLE:
                parameter["doubleValueSpec"] = {"minValue": spec.min_value, "maxValue": spec.max_value}
            elif spec.type == ParameterType.INTEGER:
                parameter["integerValueSpec"] = {
                    "minValue": str(int(spec.min_value or 0)),
                    "maxValue": str(int(spec.max_value or 0)),
                }
            elif spec.type == ParameterType.CATEGORICAL:
                parameter["categoricalValueSpec"] = {"values": spec.categorical_values or []}
            else:
                parameter["discreteValueSpec"] = {"values": spec.discrete_values or []}
            if spec.scale_type is not None:
                parameter["scaleType"] = spec.scale_type.value
            parameters.append(parameter)

        study = {
            "metrics": [{"metricId": hp_config.metric_name, "goal": hp_config.objective.upper()}],
            "parameters": parameters,
            "algorithm": STUDY_ALGORITHMS[hp_config.algorithm],
        }
        early = hp_config.early_stopping_config
        if early is not None and early.use_early_stopping:
            study["medianAutomatedStoppingSpec"] = {"useElapsedDuration": False}
        return study

    def _trial_job_spec(self, config: TuningConfig, hp_config: HyperparameterOptimizationConfig) -> Dict[str, Any]:
        resources = config.resource_config
        machine_spec = {"machineType": resources.machine_type if resources and resources.machine_type else "n1-standard-4"}
        if resources is not None and resources.accelerator_type:
            machine_spec["acceleratorType"] = resources.accelerator_type
            machine_spec["acceleratorCount"] = resources.accelerator_count or 1

        pool = {"machineSpec": machine_spec, "replicaCount": "1"}
        if resources is not None and resources.disk_size_gb:
            pool["diskSpec"] = {"bootDiskType": resources.disk_type or "pd-ssd", "bootDiskSizeGb": resources.disk_size_gb}
        if hp_config.trainer_image_uri:
            pool["containerSpec"] = {
                "imageUri": hp_config.trainer_image_uri,
                "args": [
                    f"--source_model={config.source_model}",
                    f"--tuning_method={config.tuning_method.value}",
                    f"--training_data_uri={config.dataset.training_data.uri}",
                ],
            }

        spec = {"workerPoolSpecs": [pool]}
        if config.output_directory:
            spec["baseOutputDirectory"] = {"outputUriPrefix": config.output_directory}
        return spec

    def create_hyperparameter_tuning_job(
        self, name: str, base_config: TuningConfig, hp_config: HyperparameterOptimizationConfig
    ) -> TuningJob:
        """
        Submit a hyperparameter tuning job that searches over tuning settings.

        Raises:
            ValidationError: If either configuration is invalid.
        """
        try:
            validate_tuning_config(base_config)
        except ValidationError as e:
            raise ValidationError(f"invalid base config: {e.message}") from e
        try:
            validate_hyperparameter_config(hp_config)
        except ValidationError as e:
            raise ValidationError(f"invalid hyperparameter config: {e.message}") from e

        self.config.logger.debug(
            f"create_hyperparameter_tuning_job called | name: {name}, max_trials: {hp_config.max_trials}, algorithm: {hp_config.algorithm.value}"
        )
        body = {
            "displayName": name or f"HP Tuning: {base_config.display_name or base_config.source_model}",
            "studySpec": self._study_spec(hp_config),
            "maxTrialCount": hp_config.max_trials,
            "parallelTrialCount": hp_config.max_parallel_trials or 1,
            "trialJobSpec": self._trial_job_spec(base_config, hp_config),
        }
        if base_config.labels:
            body["labels"] = base_config.labels

        res = self.make_request(method=HttpMethod.POST, path=hyperparameter_tuning_jobs(self.parent), data=body)
        job = TuningJob.model_validate(res)
        job.config = base_config
        if not job.description:
            job.description = f"Hyperparameter optimization for {base_config.source_model}"
        self.config.logger.info(f"Created hyperparameter tuning job: {job.name}")
        return job
