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

"""Base configuration classes for SDK."""

from abc import ABC, abstractmethod
import logging
import os
import threading

import aiohttp
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from vertexai_preview.exceptions import ValidationError


class BaseConfig(ABC):
    """Base configuration class for all Vertex AI preview clients."""

    _instances = {}
    _lock = threading.Lock()

    DEFAULT_STATUS_FORCELIST = (429, 500, 502, 503, 504)
    DEFAULT_BACKOFF_FACTOR = 0.5
    DEFAULT_TOTAL = 3
    DEFAULT_POOL_CONNECTIONS = 10
    DEFAULT_POOL_MAXSIZE = 20
    DEFAULT_LOG_LEVEL = logging.INFO
    DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    DEFAULT_NAME = "vertexai_preview"
    DEFAULT_LOCATION = "us-central1"
    DEFAULT_API_VERSION = "v1beta1"
    DEFAULT_TIMEOUT = 30
    DEFAULT_OPERATION_TIMEOUT = 600
    DEFAULT_OPERATION_POLL_INTERVAL = 5
    PROJECT_ENV_VAR = "GOOGLE_CLOUD_PROJECT"
    GLOBAL_LOCATION = "global"

    SUPPORTED_LOCATIONS = {
        "global",
        "us-central1",
        "us-east1",
        "us-east4",
        "us-east5",
        "us-south1",
        "us-west1",
        "us-west4",
        "northamerica-northeast1",
        "southamerica-east1",
        "europe-central2",
        "europe-north1",
        "europe-southwest1",
        "europe-west1",
        "europe-west2",
        "europe-west3",
        "europe-west4",
        "europe-west6",
        "europe-west8",
        "europe-west9",
        "me-central1",
        "me-central2",
        "me-west1",
        "asia-east1",
        "asia-east2",
        "asia-northeast1",
        "asia-northeast3",
        "asia-south1",
        "asia-southeast1",
        "australia-southeast1",
    }

    def __new__(cls, *args, **kwargs):
        if cls is BaseConfig:
            raise TypeError("BaseConfig is abstract and cannot be instantiated directly")

        # One instance per subclass; the lock is only taken while the instance does not exist yet.
        if cls not in cls._instances:
            with cls._lock:
                if cls not in cls._instances:
                    cls._instances[cls] = super().__new__(cls)

        return cls._instances[cls]

    def __init__(self, *args, **kwargs):
        # On the first call, _initialized doesn't exist yet. Direct access would raise AttributeError
        if not getattr(self, "_initialized", False):
            self._initialized = True
            self._initialize(*args, **kwargs)

    def _set_project(self, project: str):
        if not (project and isinstance(project, str)):
            project = os.environ.get(self.PROJECT_ENV_VAR)

        self.project = project

    def _set_location(self, location: str):
        if not isinstance(location, str) or not location:
            location = self.DEFAULT_LOCATION

        if location not in self.SUPPORTED_LOCATIONS:
            raise ValueError(f"Invalid location: {location}")

        self.location = location

    def _set_timeout(self, timeout: int):
        # bool is a subclass of int in Python
        if not (isinstance(timeout, int) and not isinstance(timeout, bool)):
            timeout = self.DEFAULT_TIMEOUT

        self.timeout = timeout

    def _set_operation_settings(self, operation_timeout, operation_poll_interval):
        if not isinstance(operation_timeout, (int, float)) or isinstance(operation_timeout, bool) or operation_timeout <= 0:
            operation_timeout = self.DEFAULT_OPERATION_TIMEOUT

        if (
            not isinstance(operation_poll_interval, (int, float))
            or isinstance(operation_poll_interval, bool)
            or operation_poll_interval <= 0
        ):
            operation_poll_interval = self.DEFAULT_OPERATION_POLL_INTERVAL

        self.operation_timeout = operation_timeout
        self.operation_poll_interval = operation_poll_interval

    def _set_base_url(self, api_endpoint: str, api_version: str):
        self.api_version = api_version if api_version and isinstance(api_version, str) else self.DEFAULT_API_VERSION

        if api_endpoint and isinstance(api_endpoint, str):
            if not api_endpoint.startswith(("http://", "https://")):
                raise ValidationError(f"Invalid URL: {api_endpoint}")

            endpoint = api_endpoint.rstrip("/")
        elif self.location == self.GLOBAL_LOCATION:
            endpoint = "https://aiplatform.googleapis.com"
        else:
            endpoint = f"https://{self.location}-aiplatform.googleapis.com"

        self.api_endpoint = endpoint
        self.base_url = f"{endpoint}/{self.api_version}"

    def _set_logger(self, logger, logger_params: dict):
        if logger:
            self.logger = logger
        else:
            if not isinstance(logger_params, dict):
                logger_params = {}

            log_name = logger_params.get("name", self.DEFAULT_NAME)
            log_level = logger_params.get("level", self.DEFAULT_LOG_LEVEL)
            log_format = logger_params.get("format", self.DEFAULT_LOG_FORMAT)

            self.logger = logging.getLogger(log_name)
            self.logger.setLevel(log_level)

            if not self.logger.handlers:
                handler = logging.StreamHandler()
                handler.setFormatter(logging.Formatter(log_format))
                self.logger.addHandler(handler)

    def _set_retry_config(self, retry_config: dict):
        if not isinstance(retry_config, dict):
            retry_config = {}

        self.retry_config = {
            "total": retry_config.get("total", self.DEFAULT_TOTAL),
            "backoff_factor": retry_config.get("backoff_factor", self.DEFAULT_BACKOFF_FACTOR),
            "status_forcelist": retry_config.get("status_forcelist", list(self.DEFAULT_STATUS_FORCELIST)),
            "allowed_methods": retry_config.get("allowed_methods", None),
            "raise_on_status": retry_config.get("raise_on_status", False),
            "respect_retry_after_header": retry_config.get("respect_retry_after_header", True),
        }

    def _set_pool_config(self, pool_config: dict):
        if not isinstance(pool_config, dict):
            pool_config = {}

        self.pool_config = {
            "pool_connections": pool_config.get("pool_connections", self.DEFAULT_POOL_CONNECTIONS),
            "pool_maxsize": pool_config.get("pool_maxsize", self.DEFAULT_POOL_MAXSIZE),
        }

    @property
    def parent(self) -> str:
        """Resource parent for the configured project and location."""
        if not self.project:
            raise ValidationError("project is required")

        return f"projects/{self.project}/locations/{self.location}"

    def _initialize_common(
        self,
        project,
        location,
        api_endpoint,
        api_version,
        timeout,
        logger,
        logger_params,
        retry_config,
        pool_config,
        operation_timeout,
        operation_poll_interval,
    ):
        self._set_project(project)
        self._set_location(location)
        self._set_timeout(timeout)
        self._set_base_url(api_endpoint, api_version)
        self._set_logger(logger, logger_params)
        self._set_retry_config(retry_config)
        self._set_pool_config(pool_config)
        self._set_operation_settings(operation_timeout, operation_poll_interval)

    @abstractmethod
    def _initialize(self, *args, **kwargs):
        pass


class Config(BaseConfig):
    """
    SDK configuration object for managing connection, logging, retry, and endpoint settings for synchronous API calls.

    The Config class centralizes all options for the Vertex AI preview clients. It controls the
    Google Cloud project and location, the API endpoint, HTTP timeouts, logging behavior, retry
    logic, HTTP connection pooling and the polling of long-running operations.

    Pass a Config instance to any synchronous client (e.g., CachingClient, TuningClient) to apply
    consistent settings across all SDK operations.

    Typical usage:
        config = Config(project="my-project", location="us-central1", timeout=60)
        client = CachingClient(config=config)

    Args:
        project (str, optional): Google Cloud project ID. Falls back to the GOOGLE_CLOUD_PROJECT environment variable.
        location (str, optional): Vertex AI location. Default is 'us-central1'.
        api_endpoint (str, optional): Custom API endpoint. If provided, takes precedence over location.
        api_version (str, optional): API version path segment. Default is 'v1beta1'.
        timeout (int, optional): Timeout for HTTP requests in seconds. Default is 30.
        logger (logging.Logger, optional): Optional custom logger instance. If not provided, one is created.
        logger_params (dict, optional): Parameters for logger creation (`name`, `level`, `format`).
        retry_config (dict, optional): Retry configuration dict (e.g., {"total": 3, "backoff_factor": 0.5, "status_forcelist": [...]}).
        connection_pool (requests.adapters.HTTPAdapter, optional): Optional custom HTTPAdapter for connection pooling.
        pool_config (dict, optional): Parameters for connection pool (`pool_connections`, `pool_maxsize`).
        operation_timeout (float, optional): Seconds to wait for long-running operations. Default is 600.
        operation_poll_interval (float, optional): Seconds between operation polls. Default is 5.

    Attributes:
        project (str): Google Cloud project ID.
        location (str): Selected location.
        base_url (str): Base API URL including the API version.
        timeout (int): HTTP timeout.
        logger (logging.Logger): Logger instance.
        retry_config (dict): Retry configuration.
        connection_pool (requests.adapters.HTTPAdapter): HTTP connection pool adapter.
        pool_config (dict): Parameters for connection pool.
    """

    def _initialize(
        self,
        project: str = None,
        location: str = None,
        api_endpoint: str = None,
        api_version: str = None,
        timeout: int = None,
        logger: logging.Logger = None,
        logger_params: dict = None,
        retry_config: dict = None,
        connection_pool: HTTPAdapter = None,
        pool_config: dict = None,
        operation_timeout: float = None,
        operation_poll_interval: float = None,
    ):
        self._initialize_common(
            project,
            location,
            api_endpoint,
            api_version,
            timeout,
            logger,
            logger_params,
            retry_config,
            pool_config,
            operation_timeout,
            operation_poll_interval,
        )

        # Build a urllib3 Retry object from retry_config
        self._retry_obj = Retry(
            total=self.retry_config.get("total"),
            backoff_factor=self.retry_config.get("backoff_factor"),
            status_forcelist=self.retry_config.get("status_forcelist"),
            allowed_methods=self.retry_config.get("allowed_methods"),
            raise_on_status=self.retry_config.get("raise_on_status"),
            respect_retry_after_header=self.retry_config.get("respect_retry_after_header"),
        )

        # --- Connection Pool ---
        if connection_pool:
            if not isinstance(connection_pool, HTTPAdapter):
                raise TypeError("connection_pool must be an instance of requests.adapters.HTTPAdapter")

            self.connection_pool = connection_pool
        else:
            self.connection_pool = HTTPAdapter(
                pool_connections=self.pool_config.get("pool_connections"),
                pool_maxsize=self.pool_config.get("pool_maxsize"),
                max_retries=self._retry_obj,
            )


class AsyncConfig(BaseConfig):
    """
    SDK configuration object for asynchronous API calls.

    Accepts the same options as Config, except that connection_pool must be an
    aiohttp.TCPConnector. When none is given, the connector is created on first
    use so that it binds to the running event loop.

    Typical usage:
        config = AsyncConfig(project="my-project", timeout=60)
        client = AsyncExtensionClient(config=config)
    """

    def _initialize(
        self,
        project: str = None,
        location: str = None,
        api_endpoint: str = None,
        api_version: str = None,
        timeout: int = None,
        logger: logging.Logger = None,
        logger_params: dict = None,
        retry_config: dict = None,
        connection_pool: aiohttp.TCPConnector = None,
        pool_config: dict = None,
        operation_timeout: float = None,
        operation_poll_interval: float = None,
    ):
        """
        Initialize the async configuration settings.

        Raises:
            TypeError: If connection_pool is not an aiohttp.TCPConnector instance.
        """
        self._initialize_common(
            project,
            location,
            api_endpoint,
            api_version,
            timeout,
            logger,
            logger_params,
            retry_config,
            pool_config,
            operation_timeout,
            operation_poll_interval,
        )

        # --- Connection Pool ---
        if connection_pool and not isinstance(connection_pool, aiohttp.TCPConnector):
            raise TypeError("connection_pool must be an instance of aiohttp.TCPConnector")

        self._connection_pool = connection_pool

    @property
    def connection_pool(self) -> aiohttp.TCPConnector:
        """Connector shared by every async handler built from this config."""
        if self._connection_pool is None or self._connection_pool.closed:
            self._connection_pool = aiohttp.TCPConnector(
                limit=self.pool_config.get("pool_connections"),
                limit_per_host=self.pool_config.get("pool_maxsize"),
                ttl_dns_cache=300,
            )

        return self._connection_pool

    async def close(self):
        """Explicitly close the connection pool (optional, for graceful shutdown)."""
        if self._connection_pool and not self._connection_pool.closed:
            await self._connection_pool.close()
