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

"""aiohttp transport used by the async Vertex AI clients."""

from typing import Dict, Optional

import aiohttp
import asyncio

from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    RetryCallState,
    wait_random_exponential,
)

from .auth import AsyncGoogleAuth
from .config import AsyncConfig
from .exceptions import ApiError
from .request_handler import BaseRequestHandler


class AsyncRequestHandler(BaseRequestHandler):
    """
    Sends Vertex AI REST calls over a shared aiohttp session.

    The session is opened on demand by ``ensure_session`` and borrows the connector of the
    ``AsyncConfig``. Failed calls go through tenacity: transport errors, timeouts and the
    configured retryable status codes are retried with jittered exponential backoff.
    """

    def __init__(self, config: AsyncConfig):
        super().__init__(config)
        self._session = None
        self._session_lock = asyncio.Lock()
        self._timeout = aiohttp.ClientTimeout(total=config.timeout)
        self._retry_config = config.retry_config
        self.request = self._with_retries(self.request)

    async def ensure_session(self):
        """Open the aiohttp session unless one is already usable."""
        if self._session is not None and not self._session.closed:
            return

        async with self._session_lock:
            if self._session is not None and not self._session.closed:
                return
            self._session = aiohttp.ClientSession(
                connector=self.config.connection_pool,
                connector_owner=False,
                timeout=self._timeout,
                headers={"User-Agent": self.USER_AGENT, "Content-Type": "application/json"},
            )

    async def close(self):
        # Only the session is ours; AsyncConfig owns the connector.
        if self._session is not None and not self._session.closed:
            await self._session.close()

    def _with_retries(self, send):
        attempts = self._retry_config.get("total") + 1
        backoff = self._retry_config.get("backoff_factor")
        return retry(
            stop=stop_after_attempt(attempts),
            wait=wait_random_exponential(multiplier=backoff, min=backoff, max=60),
            retry=retry_if_exception(self._should_retry_exception),
            before_sleep=self._log_retry_attempt,
            reraise=True,
        )(send)

    def _should_retry_exception(self, exception) -> bool:
        if isinstance(exception, ApiError):
            return exception.status_code in self._retry_config.get("status_forcelist")
        if isinstance(exception, aiohttp.ClientResponseError):
            return False
        return isinstance(exception, (asyncio.TimeoutError, aiohttp.ClientError))

    def _log_retry_attempt(self, retry_state: RetryCallState) -> None:
        self.config.logger.info(
            f"Retrying request | attempt: {retry_state.attempt_number}, error: {retry_state.outcome.exception()}"
        )

    async def request(
        self,
        method: str,
        url: str,
        auth: AsyncGoogleAuth,
        request_id: str = None,
        headers: Dict = None,
        params: Dict = None,
        json_data: Dict = None,
        timeout: int = None,
    ) -> Dict:
        """
        Send one Vertex AI REST call and decode its JSON body.

        Args:
            method (str): HTTP verb.
            url (str): Absolute Vertex AI URL.
            auth (AsyncGoogleAuth): Middleware adding the bearer token, or None.
            request_id (str, optional): Value for the request-id header. Generated when omitted.
            headers (dict, optional): Extra headers.
            params (dict, optional): Query string.
            json_data (dict, optional): JSON body.
            timeout (int, optional): Per-call timeout in seconds.

        Returns:
            Dict: Decoded body; ``{}`` when the server sends none.

        Raises:
            RuntimeError: If ``ensure_session`` was not awaited first.
            SDKError: 401 or 403.
            ValidationError: 400.
            NotFoundError: 404.
            ApiError: Any other error status.
        """
        self.config.logger.debug(
            f"request called | method: {method}, url: {url}, request_id: {request_id}, params: {params}, json_data: {json_data}"
        )
        if self._session is None or self._session.closed:
            raise RuntimeError(
                "Session not initialized. Use 'async with AsyncExtensionClient(...) as client' "
                "or call ensure_session() before request()."
            )

        self._validate_method(method)
        self._validate_url(url)

        request_id = request_id or self.get_request_id()
        request_headers = {**self._session.headers, **(headers or {}), self.REQUEST_ID_HEADER: request_id}
        call_timeout = self._timeout
        if isinstance(timeout, int) and not isinstance(timeout, bool):
            call_timeout = aiohttp.ClientTimeout(total=timeout)

        try:
            async with self._session.request(
                method=method,
                url=url,
                middlewares=(auth,) if auth else (),
                headers=request_headers,
                params=params,
                json=json_data,
                timeout=call_timeout,
            ) as response:
                if response.status >= 400:
                    return await self._handle_error_response(response, request_id)
                if not await response.text():
                    return {}
                return await response.json(content_type=None)
        except aiohttp.ClientError as e:
            self.config.logger.error(f"Async request failed | url: {url}, error: {e}")
            raise

    async def _handle_error_response(self, response: aiohttp.ClientResponse, request_id: Optional[str] = None):
        """Turn a Google error envelope into the matching SDK exception."""
        text = await response.text()
        self.config.logger.debug(f"_handle_error_response called | status_code: {response.status}, response: {text}")
        try:
            payload = await response.json(content_type=None)
        except (ValueError, aiohttp.ContentTypeError):
            payload = {"message": text or "Unknown error"}

        self._raise_appropriate_exception(response.status, self._extract_error_message(payload), request_id)
