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
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, Field, model_validator

from vertexai_preview.models.base import VertexModel, restore_enum_wrapper
from vertexai_preview.models.operation import Status


# --------------------
# Enums
# --------------------

class TuningMethod(str, Enum):
    """Fine-tuning technique."""
    SFT = "supervised_fine_tuning"
    LORA = "lora"
    QLORA = "qlora"
    PEFT = "parameter_efficient_fine_tuning"
    PREFIX_TUNING = "prefix_tuning"
    P_TUNING_V2 = "p_tuning_v2"
    ADAPTERS = "adapters"
    FULL = "full_fine_tuning"


class DataSourceType(str, Enum):
    GCS = "gcs"
    BIGQUERY = "bigquery"
    LOCAL = "local"
    URL = "url"


class DataFormat(str, Enum):
    JSONL = "jsonl"
    CSV = "csv"
    TSV = "tsv"
    PARQUET = "parquet"
    BIGQUERY = "bigquery"


class TuningJobState(str, Enum):
    """State of a tuning job, as reported by the API."""
    UNSPECIFIED = "JOB_STATE_UNSPECIFIED"
    QUEUED = "JOB_STATE_QUEUED"
    PENDING = "JOB_STATE_PENDING"
    RUNNING = "JOB_STATE_RUNNING"
    SUCCEEDED = "JOB_STATE_SUCCEEDED"
    FAILED = "JOB_STATE_FAILED"
    CANCELLING = "JOB_STATE_CANCELLING"
    CANCELLED = "JOB_STATE_CANCELLED"
    PAUSED = "JOB_STATE_PAUSED"
    EXPIRED = "JOB_STATE_EXPIRED"
    UPDATING = "JOB_STATE_UPDATING"
    PARTIALLY_SUCCEEDED = "JOB_STATE_PARTIALLY_SUCCEEDED"


CANCELLABLE_STATES = (TuningJobState.QUEUED, TuningJobState.PENDING, TuningJobState.RUNNING)
TERMINAL_STATES = (
    TuningJobState.SUCCEEDED,
    TuningJobState.FAILED,
    TuningJobState.CANCELLED,
    TuningJobState.EXPIRED,
    TuningJobState.PARTIALLY_SUCCEEDED,
)


class BiasTraining(str, Enum):
    NONE = "none"
    ALL = "all"
    LORA_ONLY = "lora_only"


class ParameterType(str, Enum):
    DOUBLE = "DOUBLE"
    INTEGER = "INTEGER"
    CATEGORICAL = "CATEGORICAL"
    DISCRETE = "DISCRETE"


class ScaleType(str, Enum):
    LINEAR = "UNIT_LINEAR_SCALE"
    LOG = "UNIT_LOG_SCALE"
    REVERSE_LOG = "UNIT_REVERSE_LOG_SCALE"


class OptimizationAlgorithm(str, Enum):
    BAYESIAN = "BAYESIAN_OPTIMIZATION"
    GRID = "GRID_SEARCH"
    RANDOM = "RANDOM_SEARCH"


# --------------------
# Dataset Models
# --------------------

class DataSource(VertexModel):
    """Where training data is read from.

    Args:
        type: Kind of source.
        uri: Location of the data, e.g. a gs:// URI.
        sql_query: Query for BigQuery sources.
        headers: Whether CSV/TSV files have a header row.
        encoding: Text encoding.
    """
    type: DataSourceType = DataSourceType.GCS
    uri: str = ""
    sql_query: Optional[str] = None
    headers: bool = False
    encoding: Optional[str] = None


class DataSchema(VertexModel):
    input_column: str = "input_text"
    output_column: str = "output_text"
    context_column: Optional[str] = None
    id_column: Optional[str] = None
    weight_column: Optional[str] = None


class TokenizationConfig(VertexModel):
    max_length: int = 512
    truncation: bool = True
    padding: str = "max_length"
    add_special_tokens: bool = True
    padding_token: Optional[str] = None
    truncation_strategy: Optional[str] = None


class TextProcessingConfig(VertexModel):
    lower_case: bool = False
    remove_html: bool = False
    normalize_whitespace: bool = False
    remove_empty_lines: bool = False
    strip_accents: bool = False


class AugmentationConfig(VertexModel):
    synonym_replacement: bool = False
    back_translation: bool = False
    paraphrasing: bool = False
    noise_injection: bool = False
    augmentation_ratio: float = 0.0


class FilterConfig(VertexModel):
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    exclude_profanity: bool = False
    exclude_pii: bool = False


class PreprocessConfig(VertexModel):
    tokenization: Optional[TokenizationConfig] = None
    text_processing: Optional[TextProcessingConfig] = None
    augmentation: Optional[AugmentationConfig] = None
    filter_config: Optional[FilterConfig] = None


class DatasetConfig(VertexModel):
    """Training, validation and test data plus preprocessing."""
    training_data: Optional[DataSource] = None
    validation_data: Optional[DataSource] = None
    test_data: Optional[DataSource] = None
    data_format: DataFormat = DataFormat.JSONL
    schema_: Optional[DataSchema] = Field(None, alias="schema")
    preprocess_config: Optional[PreprocessConfig] = None
    max_samples: Optional[int] = None
    shuffle_data: bool = False
    validation_split: Optional[float] = None


# --------------------
# Training Models
# --------------------

class HyperparameterConfig(VertexModel):
    learning_rate: Optional[float] = None
    learning_rate_multiplier: Optional[float] = None
    batch_size: Optional[int] = None
    gradient_accumulation: Optional[int] = None
    epochs: Optional[int] = None
    max_steps: Optional[int] = None
    warmup_steps: Optional[int] = None
    warmup_ratio: Optional[float] = None
    weight_decay: Optional[float] = None
    adam_epsilon: Optional[float] = None
    adam_beta1: Optional[float] = None
    adam_beta2: Optional[float] = None
    lr_scheduler: Optional[str] = None
    adapter_size: Optional[int] = None
    dropout_rate: Optional[float] = None
    gradient_clipping: Optional[float] = None
    mixed_precision: bool = False
    seed: Optional[int] = None


class LoRAConfig(VertexModel):
    """Low-rank adaptation settings."""
    rank: int = 0
    alpha: int = 0
    dropout_rate: float = 0.0
    target_modules: List[str] = Field(default_factory=list)
    bias_training: BiasTraining = BiasTraining.NONE
    task_type: Optional[str] = None
    merge_peft_weights: bool = False


class QuantizationConfig(VertexModel):
    load_in_4bit: bool = False
    load_in_8bit: bool = False
    bnb_4bit_compute_dtype: Optional[str] = None
    bnb_4bit_quant_type: Optional[str] = None
    bnb_4bit_use_double_quant: bool = False
    llm_int_max_memory: Optional[Dict[str, str]] = None


class QLoRAConfig(VertexModel):
    lora_config: Optional[LoRAConfig] = None
    quantization_config: Optional[QuantizationConfig] = None


class EvaluationConfig(VertexModel):
    evaluate_steps: int = 0
    save_steps: int = 0
    logging_steps: int = 0
    metrics: List[str] = Field(default_factory=list)
    early_stopping_patience: Optional[int] = None
    early_stopping_threshold: Optional[float] = None
    validation_split: Optional[float] = None
    metric_for_best_model: Optional[str] = None
    greater_is_better: bool = False
    load_best_model_at_end: bool = False


class ResourceConfig(VertexModel):
    machine_type: Optional[str] = None
    accelerator_type: Optional[str] = None
    accelerator_count: Optional[int] = None
    disk_type: Optional[str] = None
    disk_size_gb: Optional[int] = None
    enable_checkpointing: bool = False
    max_runtime: Optional[timedelta] = None


class TuningConfig(VertexModel):
    """
    Complete description of a fine-tuning run.

    Args:
        source_model: Base model to tune, e.g. gemini-2.0-flash-001.
        tuning_method: Fine-tuning technique.
        dataset: Dataset configuration. Training data with a URI is required.
        hyperparameters: Optimizer and schedule settings.
        lora_config: Required for LoRA tuning.
        qlora_config: Required for QLoRA tuning.
        evaluation_config: Evaluation cadence and metrics.
        resource_config: Machine and accelerator settings.
        output_directory: Where artifacts are written.
        display_name: Display name of the tuned model.
        description: Description of the job.
        labels: Labels attached to the job.
    """
    source_model: str = ""
    tuning_method: TuningMethod = TuningMethod.SFT
    dataset: Optional[DatasetConfig] = None
    hyperparameters: Optional[HyperparameterConfig] = None
    lora_config: Optional[LoRAConfig] = None
    qlora_config: Optional[QLoRAConfig] = None
    evaluation_config: Optional[EvaluationConfig] = None
    resource_config: Optional[ResourceConfig] = None
    output_directory: Optional[str] = None
    display_name: Optional[str] = None
    description: Optional[str] = None
    labels: Dict[str, str] = Field(default_factory=dict)


# --------------------
# Job Models
# --------------------

class TrainingProgress(VertexModel):
    current_epoch: int = Field(default=0, alias="currentEpoch")
    total_epochs: int = Field(default=0, alias="totalEpochs")
    current_step: int = Field(default=0, alias="currentStep")
    total_steps: int = Field(default=0, alias="totalSteps")
    training_loss: float = Field(default=0.0, alias="trainingLoss")
    validation_loss: Optional[float] = Field(None, alias="validationLoss")
    validation_accuracy: Optional[float] = Field(None, alias="validationAccuracy")
    learning_rate: float = Field(default=0.0, alias="learningRate")
    metrics: Dict[str, float] = Field(default_factory=dict)
    last_update_time: Optional[datetime] = Field(None, alias="lastUpdateTime")


class TunedModelRef(VertexModel):
    """Resources produced by a successful tuning job."""
    model: Optional[str] = None
    endpoint: Optional[str] = None


class TuningJob(VertexModel):
    """A tuning job (or hyperparameter tuning job) resource."""
    name: str = ""
    display_name: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("tunedModelDisplayName", "displayName", "display_name"),
        serialization_alias="tunedModelDisplayName",
    )
    description: Optional[str] = None
    base_model: Optional[str] = Field(None, alias="baseModel")
    state: TuningJobState = TuningJobState.UNSPECIFIED
    create_time: Optional[datetime] = Field(None, alias="createTime")
    start_time: Optional[datetime] = Field(None, alias="startTime")
    end_time: Optional[datetime] = Field(None, alias="endTime")
    update_time: Optional[datetime] = Field(None, alias="updateTime")
    tuned_model: Optional[TunedModelRef] = Field(None, alias="tunedModel")
    training_progress: Optional[TrainingProgress] = Field(None, alias="trainingProgress")
    error: Optional[Status] = None
    labels: Dict[str, str] = Field(default_factory=dict)
    config: Optional[TuningConfig] = Field(None, exclude=True)

    @model_validator(mode="before")
    @classmethod
    def _restore_enums(cls, values):
        return restore_enum_wrapper(cls, values)


class ListTuningJobsResponse(VertexModel):
    tuning_jobs: List[TuningJob] = Field(default_factory=list, alias="tuningJobs")
    next_page_token: Optional[str] = Field(None, alias="nextPageToken")


class TunedModel(VertexModel):
    """A model registered by a tuning job."""
    name: str = ""
    display_name: Optional[str] = Field(None, alias="displayName")
    description: Optional[str] = None
    source_model: Optional[str] = Field(None, alias="baseModel")
    model_path: Optional[str] = Field(None, alias="artifactUri")
    version_id: Optional[str] = Field(None, alias="versionId")
    create_time: Optional[datetime] = Field(None, alias="createTime")
    update_time: Optional[datetime] = Field(None, alias="updateTime")
    metadata: Optional[Dict[str, Any]] = None
    labels: Dict[str, str] = Field(default_factory=dict)


# --------------------
# Hyperparameter Optimization Models
# --------------------

class ParameterSpec(VertexModel):
    name: str
    type: ParameterType
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    scale_type: Optional[ScaleType] = None
    categorical_values: Optional[List[str]] = None
    discrete_values: Optional[List[float]] = None


class EarlyStoppingConfig(VertexModel):
    use_early_stopping: bool = False
    min_trials: Optional[int] = None
    top_trial_ratio: Optional[float] = None


class HyperparameterOptimizationConfig(VertexModel):
    """
    Search space and budget for a hyperparameter tuning job.

    Args:
        parameter_specs: Parameters to search over. At least one is required.
        max_trials: Total trial budget. Must be positive.
        max_parallel_trials: Trials run concurrently.
        objective: ``minimize`` or ``maximize``.
        metric_name: Metric reported by trials.
        algorithm: Search algorithm.
        early_stopping_config: Automated trial stopping.
        trainer_image_uri: Container image that runs one trial.
    """
    parameter_specs: List[ParameterSpec] = Field(default_factory=list)
    max_trials: int = 0
    max_parallel_trials: Optional[int] = None
    objective: str = ""
    metric_name: str = ""
    algorithm: OptimizationAlgorithm = OptimizationAlgorithm.BAYESIAN
    early_stopping_config: Optional[EarlyStoppingConfig] = None
    trainer_image_uri: Optional[str] = None


# --------------------
# Serving Models
# --------------------

class AutoScalingConfig(VertexModel):
    metric_name: str
    target_value: float
    min_replicas: int = 1
    max_replicas: int = 1


class DeploymentConfig(VertexModel):
    machine_type: str = "n1-standard-4"
    min_replicas: int = 1
    max_replicas: int = 1
    traffic_split: int = 100
    auto_scaling: Optional[AutoScalingConfig] = None
    deployment_name: Optional[str] = None


class Endpoint(VertexModel):
    name: str = ""
    display_name: Optional[str] = Field(None, alias="displayName")
    description: Optional[str] = None
    predict_url: Optional[str] = Field(None, exclude=True)
    create_time: Optional[datetime] = Field(None, alias="createTime")
    update_time: Optional[datetime] = Field(None, alias="updateTime")
    labels: Dict[str, str] = Field(default_factory=dict)


class PredictRequest(VertexModel):
    instances: List[Dict[str, Any]] = Field(default_factory=list)
    parameters: Optional[Dict[str, Any]] = None


class PredictResponse(VertexModel):
    predictions: List[Any] = Field(default_factory=list)
    deployed_model_id: Optional[str] = Field(None, alias="deployedModelId")
    model: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class ListOptions(VertexModel):
    filter: Optional[str] = None
    page_size: Optional[int] = None
    page_token: Optional[str] = None
    order_by: Optional[str] = None
