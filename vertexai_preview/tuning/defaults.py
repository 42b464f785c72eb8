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

"""Validation rules and factory defaults for tuning configurations."""

from vertexai_preview.exceptions import ValidationError
from .models import (
    BiasTraining,
    DataFormat,
    DataSchema,
    DataSource,
    DataSourceType,
    DatasetConfig,
    EvaluationConfig,
    HyperparameterConfig,
    HyperparameterOptimizationConfig,
    LoRAConfig,
    PreprocessConfig,
    QLoRAConfig,
    QuantizationConfig,
    ResourceConfig,
    TextProcessingConfig,
    TokenizationConfig,
    TuningConfig,
    TuningMethod,
)


def validate_lora_config(config: LoRAConfig) -> None:
    if config.rank <= 0:
        raise ValidationError("LoRA rank must be positive")
    if config.alpha <= 0:
        raise ValidationError("LoRA alpha must be positive")
    if config.dropout_rate < 0 or config.dropout_rate > 1:
        raise ValidationError("LoRA dropout rate must be between 0 and 1")
    if not config.target_modules:
        raise ValidationError("at least one target module must be specified for LoRA")


def validate_tuning_config(config: TuningConfig) -> None:
    """
    Validate a tuning configuration before it is submitted.

    Raises:
        ValidationError: With the first problem found.
    """
    if config is None:
        raise ValidationError("tuning config is required")
    if not config.source_model:
        raise ValidationError("source model is required")
    if config.dataset is None:
        raise ValidationError("dataset configuration is required")
    if config.dataset.training_data is None:
        raise ValidationError("training data is required")
    if not config.dataset.training_data.uri:
        raise ValidationError("training data URI is required")

    if config.tuning_method == TuningMethod.LORA:
        if config.lora_config is None:
            raise ValidationError("LoRA config is required for LoRA tuning")
        try:
            validate_lora_config(config.lora_config)
        except ValidationError as e:
            raise ValidationError(f"invalid LoRA config: {e.message}") from e

    elif config.tuning_method == TuningMethod.QLORA:
        if config.qlora_config is None:
            raise ValidationError("QLoRA config is required for QLoRA tuning")
        if config.qlora_config.lora_config is None:
            raise ValidationError("LoRA config is required within QLoRA config")
        if config.qlora_config.quantization_config is None:
            raise ValidationError("quantization config is required for QLoRA tuning")


def validate_hyperparameter_config(config: HyperparameterOptimizationConfig) -> None:
    if config is None:
        raise ValidationError("hyperparameter config is required")
    if not config.parameter_specs:
        raise ValidationError("at least one parameter spec is required")
    if config.max_trials <= 0:
        raise ValidationError("max trials must be positive")
    if not config.metric_name:
        raise ValidationError("metric name is required")
    if config.objective not in ("minimize", "maximize"):
        raise ValidationError("objective must be 'minimize' or 'maximize'")


def new_tuning_config(source_model: str, method: TuningMethod) -> TuningConfig:
    """Tuning config with common hyperparameter, evaluation and resource defaults."""
    return TuningConfig(
        source_model=source_model,
        tuning_method=method,
        hyperparameters=HyperparameterConfig(
            learning_rate=2e-4,
            batch_size=4,
            epochs=3,
            warmup_steps=100,
            seed=42,
        ),
        evaluation_config=EvaluationConfig(
            evaluate_steps=100,
            save_steps=500,
            logging_steps=10,
            metrics=["loss", "accuracy"],
            greater_is_better=True,
            load_best_model_at_end=True,
        ),
        resource_config=ResourceConfig(
            machine_type="n1-standard-4",
            accelerator_type="NVIDIA_TESLA_T4",
            accelerator_count=1,
            disk_type="pd-ssd",
            disk_size_gb=100,
            enable_checkpointing=True,
        ),
    )


def new_lora_config() -> LoRAConfig:
    return LoRAConfig(
        rank=16,
        alpha=32,
        dropout_rate=0.1,
        target_modules=["q_proj", "v_proj", "k_proj", "o_proj"],
        bias_training=BiasTraining.NONE,
        task_type="CAUSAL_LM",
    )


def new_qlora_config() -> QLoRAConfig:
    return QLoRAConfig(
        lora_config=new_lora_config(),
        quantization_config=QuantizationConfig(
            load_in_4bit=True,
            bnb_4bit_compute_dtype="float16",
            bnb_4bit_quant_type="nf4",
            bnb_4bit_use_double_quant=True,
        ),
    )


def new_dataset_config(training_uri: str, data_format: DataFormat = DataFormat.JSONL) -> DatasetConfig:
    return DatasetConfig(
        training_data=DataSource(type=DataSourceType.GCS, uri=training_uri),
        data_format=data_format,
        shuffle_data=True,
        validation_split=0.1,
        schema_=DataSchema(input_column="input_text", output_column="output_text"),
        preprocess_config=PreprocessConfig(
            tokenization=TokenizationConfig(
                max_length=512,
                truncation=True,
                padding="max_length",
                add_special_tokens=True,
            ),
            text_processing=TextProcessingConfig(
                remove_html=True,
                normalize_whitespace=True,
                remove_empty_lines=True,
            ),
        ),
    )
