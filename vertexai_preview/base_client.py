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

"""Base client shared by every synchronous Vertex AI resource client."""

from typing import Any, Dict, Optional, Union

from requests.auth import AuthBase
from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_result,
    stop_after_delay,
    wait_fixed,
)

from vertexai_preview.config import Config
from vertexai_preview.exceptions import OperationError, ValidationError
from vertexai_preview.models.operation import Operation
from vertexai_preview.request_handler import HttpMethod, RequestHandler


class BaseClient:
    """
    Base client for Vertex AI REST resources.

    Holds the configuration, the authentication handler and the request handler,
    resolves resource paths against the configured base URL and waits on
    long-running operations.

    Attributes:
        auth (AuthBase): Authentication handler applied to every request.
        config (Config): Configuration object with service settings.
    """

    def __init__(self, auth: AuthBase, config: Optional[Config] = None, request_handler: Optional[RequestHandler] = None):
        """
        Initialize the base client.

        Args:
            auth (AuthBase): Authentication handler.
            config (Config, optional): SDK configuration. A default Config is used when omitted.
            request_handler (RequestHandler, optional): Custom request handler.
        """
        self.auth = auth
        self.config = config or Config()
        self._request_handler = request_handler or RequestHandler(self.config)

    @property
    def parent(self) -> str:
        """Location parent, ``projects/{project}/locations/{location}``."""
        return self.config.parent

    def _build_url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path

        return f"{self.config.base_url}/{path.lstrip('/')}"

    def make_request(
        self,
        method: Union[HttpMethod, str],
        path: str,
        data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        request_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Send a request to a Vertex AI resource path.

        Args:
            method (HttpMethod): HTTP method.
            path (str): Resource path relative to the base URL, or an absolute URL.
            data (dict, optional): JSON body.
            params (dict, optional): Query parameters. Entries set to None are dropped.
            headers (dict, optional): Extra HTTP headers.
            request_id (str, optional): Request ID for tracing.

        Returns:
            dict: Parsed JSON response.
        """
        method = method.value if isinstance(method, HttpMethod) else method
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        return self._request_handler.request(
            method=method,
            url=self._build_url(path),
            auth=self.auth,
            request_id=request_id,
            headers=headers,
            params=params or None,
            json_data=data,
        )

    def fetch_text(self, url: str, params: Optional[Dict[str, Any]] = None) -> str:
        """Download a non-JSON document with the client credentials."""
        return self._request_handler.fetch_text(url=url, auth=self.auth, params=params)

    def close(self):
        """Release the HTTP session held by the request handler."""
        close = getattr(self._request_handler, "close", None)
        if callable(close):
            close()

    def get_operation(self, name: str) -> Operation:
        """
        Fetch a long-running operation by its resource name.

        Raises:
            ValidationError: If the name is empty.
        """
        if not name:
            raise ValidationError("operation name is required")

        res = self.make_request(method=HttpMethod.GET, path=name)
        return Operation.model_validate(res)

    def _log_poll(self, retry_state: RetryCallState) -> None:
        operation = retry_state.outcome.result()
        self.config.logger.debug(
            f"Operation still running | name: {operation.name}, attempt: {retry_state.attempt_number}"
        )

    def wait_for_operation(
        self,
        operation: Union[Operation, Dict[str, Any]],
        timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
    ) -> Dict[str, Any]:
        """
        Poll a long-running operation until it is done.

        Args:
            operation (Operation | dict): The operation returned by a mutating call.
            timeout (float, optional): Maximum seconds to wait. Defaults to config.operation_timeout.
            poll_interval (float, optional): Seconds between polls. Defaults to config.operation_poll_interval.

        Returns:
            dict: The operation response payload (empty when the operation returns nothing).

        Raises:
            OperationError: If the operation fails or does not finish in time.
        """
        if not isinstance(operation, Operation):
            operation = Operation.model_validate(operation)

        if not operation.done:
            timeout = timeout if timeout is not None else self.config.operation_timeout
            poll_interval = poll_interval if poll_interval is not None else self.config.operation_poll_interval
            retryer = Retrying(
                stop=stop_after_delay(timeout),
                wait=wait_fixed(poll_interval),
                retry=retry_if_result(lambda op: not op.done),
                before_sleep=self._log_poll,
            )
            name = operation.name
            try:
                operation = retryer(self.get_operation, name)
            except RetryError as e:
                raise OperationError(f"timed out waiting for operation {name}", operation_name=name) from e

        if operation.error is not None and (operation.error.code or operation.error.message):
            raise OperationError(
                f"operation {operation.name} failed: {operation.error.message}",
                operation_name=operation.name,
            )

        self.config.logger.debug(f"Operation finished | name: {operation.name}")
        return operation.response or {}
