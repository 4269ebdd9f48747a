"""Telemetry ping submission.

Pings are wrapped in the Telemetry v4 envelope and POSTed to the ingestion
endpoint:

    /submit/telemetry/<doc id>/<ping type>/<app name>/<app version>/<channel>/<build id>

The document id doubles as the submission id returned to the caller.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from typing import Any, Protocol

import httpx
from pydantic import BaseModel

from pioneer.core.config import Settings
from pioneer.core.config import settings as default_settings

logger = logging.getLogger(__name__)

PING_FORMAT_VERSION = 4


class PingOptions(BaseModel):
    add_client_id: bool = True
    add_environment: bool = True


class TelemetrySink(Protocol):
    async def submit_external_ping(
        self, ping_type: str, payload: dict[str, Any], options: PingOptions
    ) -> str: ...


class HttpTelemetrySink:
    """Submits pings to a Telemetry ingestion server over HTTP.

    Parameters
    ----------
    client : httpx.AsyncClient | None
        Client to reuse. When omitted a client is opened per submission.
    client_id : str | None
        Telemetry client id added when ``PingOptions.add_client_id`` is set.
    environment : dict | None
        Environment block added when ``PingOptions.add_environment`` is set.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        client_id: str | None = None,
        environment: dict[str, Any] | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.client = client
        self.client_id = client_id
        self.environment = environment
        self.settings = settings or default_settings

    def build_envelope(
        self, doc_id: str, ping_type: str, payload: dict[str, Any], options: PingOptions
    ) -> dict[str, Any]:
        s = self.settings
        envelope: dict[str, Any] = {
            "type": ping_type,
            "id": doc_id,
            "creationDate": datetime.now(UTC).isoformat(),
            "version": PING_FORMAT_VERSION,
            "application": {
                "name": s.APP_NAME,
                "version": s.APP_VERSION,
                "channel": s.APP_UPDATE_CHANNEL,
                "buildId": s.APP_BUILD_ID,
            },
            "payload": payload,
        }
        if options.add_client_id and self.client_id is not None:
            envelope["clientId"] = self.client_id
        if options.add_environment and self.environment is not None:
            envelope["environment"] = self.environment
        return envelope

    def submit_path(self, doc_id: str, ping_type: str) -> str:
        s = self.settings
        return "/".join(
            [
                "/submit/telemetry",
                doc_id,
                ping_type,
                s.APP_NAME,
                s.APP_VERSION,
                s.APP_UPDATE_CHANNEL,
                s.APP_BUILD_ID,
            ]
        )

    async def submit_external_ping(
        self, ping_type: str, payload: dict[str, Any], options: PingOptions
    ) -> str:
        doc_id = str(uuid.uuid4())
        envelope = self.build_envelope(doc_id, ping_type, payload, options)
        path = self.submit_path(doc_id, ping_type)

        if self.client is not None:
            resp = await self.client.post(path, json=envelope)
        else:
            async with httpx.AsyncClient(
                base_url=self.settings.TELEMETRY_SERVER_URL,
                timeout=self.settings.TELEMETRY_TIMEOUT,
            ) as client:
                resp = await client.post(path, json=envelope)
        resp.raise_for_status()

        logger.debug("Submitted %s ping %s", ping_type, doc_id)
        return doc_id
