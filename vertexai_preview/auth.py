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

import asyncio
import threading
from typing import Optional, Sequence

import google.auth
from google.auth import exceptions as google_auth_exceptions
from google.auth.credentials import Credentials
from google.auth.transport.requests import Request as GoogleAuthRequest
from aiohttp import ClientHandlerType, ClientRequest, ClientResponse
from requests.auth import AuthBase

from .exceptions import SDKError


class BaseAuth:
    """
    Base authentication class for Vertex AI API requests.

    Resolves an OAuth2 access token either from a static token or from Google
    credentials (explicit, or Application Default Credentials) and refreshes it
    when it expires.

    Attributes:
        AUTH_HEADER (str): The HTTP header carrying the bearer token.
        QUOTA_PROJECT_HEADER (str): The HTTP header carrying the quota project.
        DEFAULT_SCOPES (tuple): OAuth scopes requested for default credentials.
    """

    AUTH_HEADER = "Authorization"
    QUOTA_PROJECT_HEADER = "x-goog-user-project"
    DEFAULT_SCOPES = ("https://www.googleapis.com/auth/cloud-platform",)

    def __init__(
        self,
        token: Optional[str] = None,
        credentials: Optional[Credentials] = None,
        scopes: Optional[Sequence[str]] = None,
    ):
        """
        Initialize the authentication handler.

        Args:
            token (str, optional): A static OAuth2 access token. Takes precedence over credentials.
            credentials (google.auth.credentials.Credentials, optional): Credentials to use.
                When neither token nor credentials are given, Application Default Credentials are loaded lazily.
            scopes (Sequence[str], optional): OAuth scopes for default credentials.

        Raises:
            ValueError: If the token is not a non-empty string.
        """
        self.token = token
        self.credentials = credentials
        self.scopes = list(scopes or self.DEFAULT_SCOPES)
        self._lock = threading.Lock()
        self.validate()

    def validate(self):
        """Validate the static token, when one is configured."""
        if self.token is not None and (not isinstance(self.token, str) or not self.token.strip()):
            raise ValueError("Invalid access token format")

        return True

    def _load_credentials(self) -> Credentials:
        if self.credentials is None:
            try:
                self.credentials, _ = google.auth.default(scopes=self.scopes)
            except google_auth_exceptions.DefaultCredentialsError as e:
                raise SDKError(f"Authentication error: {e}") from e

        return self.credentials

    def get_token(self) -> str:
        """
        Return a valid access token, refreshing the credentials when required.

        Raises:
            SDKError: If no credentials can be found or the refresh fails.
        """
        if self.token:
            return self.token

        with self._lock:
            credentials = self._load_credentials()
            if not credentials.valid:
                try:
                    credentials.refresh(GoogleAuthRequest())
                except google_auth_exceptions.RefreshError as e:
                    raise SDKError(f"Authentication error: {e}") from e

            return credentials.token

    def quota_project(self) -> Optional[str]:
        """Quota project carried by the credentials, if any."""
        if self.credentials is None:
            return None

        return getattr(self.credentials, "quota_project_id", None)

    def auth_headers(self) -> dict:
        """Headers to attach to an authenticated request."""
        headers = {self.AUTH_HEADER: f"Bearer {self.get_token()}"}
        quota_project = self.quota_project()
        if quota_project:
            headers[self.QUOTA_PROJECT_HEADER] = quota_project

        return headers


class GoogleAuth(BaseAuth, AuthBase):
    """Bearer token authentication for requests based handlers."""

    def __call__(self, request):
        """
        Add authentication headers to the request.

        Args:
            request: The HTTP request object to authenticate.

        Returns:
            The request object with the authentication headers added.
        """
        request.headers.update(self.auth_headers())
        return request


class AsyncGoogleAuth(BaseAuth):
    """Bearer token authentication as an aiohttp client middleware."""

    async def __call__(self, request: ClientRequest, handler: ClientHandlerType) -> ClientResponse:
        """
        Async middleware that adds authentication headers to the request.

        Token refreshes perform blocking I/O, so they run in a worker thread.

        Args:
            request (ClientRequest): The aiohttp client request object.
            handler (ClientHandlerType): The next handler in the middleware chain.

        Returns:
            ClientResponse: The response from the API after the request is processed.
        """
        headers = await asyncio.to_thread(self.auth_headers)
        request.headers.update(headers)
        return await handler(request)
