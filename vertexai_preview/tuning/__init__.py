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

from .client import TuningClient
from .defaults import (
    new_dataset_config,
    new_lora_config,
    new_qlora_config,
    new_tuning_config,
    validate_hyperparameter_config,
    validate_lora_config,
    validate_tuning_config,
)
from .models import (
    AugmentationConfig,
    AutoScalingConfig,
    BiasTraining,
    DataFormat,
    DataSchema,
    DataSource,
    DataSourceType,
    DatasetConfig,
    DeploymentConfig,
    EarlyStoppingConfig,
    Endpoint,
    EvaluationConfig,
    FilterConfig,
    HyperparameterConfig,
    HyperparameterOptimizationConfig,
    ListOptions,
    ListTuningJobsResponse,
    LoRAConfig,
    OptimizationAlgorithm,
    ParameterSpec,
    ParameterType,
    PredictRequest,
    PredictResponse,
    PreprocessConfig,
    QLoRAConfig,
    QuantizationConfig,
    ResourceConfig,
    ScaleType,
    TextProcessingConfig,
    TokenizationConfig,
    TrainingProgress,
    TunedModel,
    TuningConfig,
    TuningJob,
    TuningJobState,
    TuningMethod,
)
