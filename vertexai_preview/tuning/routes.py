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

TUNING_JOBS = "tuningJobs"
HYPERPARAMETER_TUNING_JOBS = "hyperparameterTuningJobs"
ENDPOINTS = "endpoints"


def tuning_jobs(parent: str) -> str:
    """Route for creating and listing tuning jobs."""
    return f"{parent}/{TUNING_JOBS}"


def tuning_job(parent: str, job_id: str) -> str:
    """Route for a single tuning job."""
    return f"{parent}/{TUNING_JOBS}/{job_id}"


def cancel_tuning_job(job_name: str) -> str:
    """Route for cancelling a tuning job."""
    return f"{job_name}:cancel"


def hyperparameter_tuning_jobs(parent: str) -> str:
    """Route for creating hyperparameter tuning jobs."""
    return f"{parent}/{HYPERPARAMETER_TUNING_JOBS}"


def endpoints(parent: str) -> str:
    """Route for creating endpoints."""
    return f"{parent}/{ENDPOINTS}"


def deploy_model(endpoint_name: str) -> str:
    """Route for deploying a model to an endpoint."""
    return f"{endpoint_name}:deployModel"


def predict(endpoint_name: str) -> str:
    """Route for online prediction against an endpoint."""
    return f"{endpoint_name}:predict"
