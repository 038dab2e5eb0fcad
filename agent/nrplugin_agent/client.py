"""Plugin API client - aggregates samples and posts them to New Relic."""
import logging
import os
import socket
from typing import List, Optional

import httpx
from pydantic import ValidationError

from nrplugin_agent import __version__
from nrplugin_agent.aggregator import build_components
from nrplugin_agent.config import DEFAULT_GUID, DEFAULT_URL, SAMPLE_CONFIG, NewRelicConfig
from nrplugin_agent.exceptions import (
    ApplicationError,
    AuthenticationError,
    BadStatusError,
    ConfigError,
    EndpointUnavailableError,
    InvalidResponseError,
    PayloadTooLargeError,
    SerializationError,
    TransportError,
    VersionMismatchError,
)
from nrplugin_agent.models import Sample
from nrplugin_agent.schemas import AgentInfo, MetricRequest, PluginResponse

logger = logging.getLogger(__name__)

MIMETYPE = "application/json"
LICENSE_HEADER = "X-License-Key"


def check_status(status_code: int) -> None:
    """Raise the matching StatusError for anything outside 200-209."""
    if 200 <= status_code <= 209:
        return
    if status_code in (400, 404, 405):
        raise VersionMismatchError(f"Status {status_code}: maybe update agent", status_code)
    if status_code == 403:
        raise AuthenticationError(
            "Authentication error (no license key header, or invalid license key)", status_code
        )
    if status_code == 413:
        raise PayloadTooLargeError(
            "Request entity too large: too many metrics were sent in one request", status_code
        )
    if status_code in (500, 502, 503, 504):
        raise EndpointUnavailableError(f"Status {status_code}: New Relic API not available", status_code)
    raise BadStatusError(f"Received bad status code: {status_code}", status_code)


def check_body(body: bytes) -> None:
    """Validate the JSON body of an accepted response."""
    try:
        resp = PluginResponse.model_validate_json(body)
    except ValidationError as e:
        raise InvalidResponseError(
            "Received bad response data", detail=body.decode("utf-8", "replace")
        ) from e
    if resp.error:
        raise ApplicationError(f"New Relic error: {resp.error}")
    if resp.status != "ok":
        raise ApplicationError(f"New Relic status not ok: {resp.status}")


class PluginClient:
    def __init__(self, config: NewRelicConfig, hostname: str = ""):
        self.config = config
        self.hostname = hostname
        self.agent: Optional[AgentInfo] = None
        self._client: Optional[httpx.AsyncClient] = None

    @staticmethod
    def sample_config() -> str:
        return SAMPLE_CONFIG

    @staticmethod
    def description() -> str:
        return "Send metrics to the New Relic plugin API"

    def _headers(self) -> dict:
        return {
            "Content-Type": MIMETYPE,
            "Accept": MIMETYPE,
            LICENSE_HEADER: self.config.license,
        }

    async def connect(self):
        """Validate config, resolve agent identity and open the HTTP client."""
        if not self.config.license:
            raise ConfigError("License key is a required field for newrelic output")
        if not self.config.url:
            self.config.url = DEFAULT_URL
        if not self.config.guid:
            self.config.guid = DEFAULT_GUID

        host = self.hostname
        if not host:
            try:
                host = socket.gethostname()
            except OSError as e:
                raise ConfigError(f"Failed to get hostname: {e}") from e
            if not host:
                raise ConfigError("Failed to get hostname: empty result")

        self.agent = AgentInfo(host=host, pid=os.getpid(), version=__version__)
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.config.timeout)
        logger.info(f"Connected as {host} (pid={self.agent.pid}), endpoint {self.config.url}")

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def write(self, samples: List[Sample]):
        """Aggregate one batch and send it as a single request."""
        if not samples:
            return
        if self.agent is None or self._client is None:
            raise ConfigError("Client is not connected; call connect() first")

        components = build_components(samples, self.agent.host, self.config.guid)
        try:
            request = MetricRequest.build(self.agent, components)
        except ValidationError as e:
            raise SerializationError(f"Unable to build request data: {e}") from e
        await self.send(request)

    async def send(self, request: MetricRequest):
        """POST one request and classify the response. Raises on any failure."""
        if self._client is None:
            raise ConfigError("Client is not connected; call connect() first")
        try:
            body = request.model_dump_json().encode("utf-8")
        except ValueError as e:
            raise SerializationError(f"Unable to marshal request data: {e}") from e

        try:
            resp = await self._client.post(self.config.url, content=body, headers=self._headers())
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise TransportError(f"Error POSTing metrics: {e}") from e

        check_status(resp.status_code)
        check_body(resp.content)
        logger.debug(
            "Metrics reported: components=%d metrics=%d",
            len(request.components),
            sum(len(c.metrics) for c in request.components),
        )
