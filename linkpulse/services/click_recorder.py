"""Click ingestion: resolve, enrich and persist one click."""

import asyncio
import time
from collections.abc import Mapping
from uuid import UUID

import structlog

from linkpulse.core.errors import AnalyticsError, InvalidArgumentError
from linkpulse.core.observability import record_click_recorded, record_click_rejected
from linkpulse.schemas.records import ClickEvent, LinkRecord, NewClick
from linkpulse.services.geoip import GeolocationResolver
from linkpulse.services.ip_resolver import get_header, resolve_client_ip
from linkpulse.services.user_agent import UserAgentClassifier
from linkpulse.stores.base import ClickStore, LinkStore, UserStore

logger = structlog.get_logger()

UNKNOWN_USER_AGENT = "Unknown"


class ClickRecorder:
    """Sole write path for clicks produced by inbound traffic.

    Enrichment is best effort: IP, user-agent and geolocation resolution
    degrade to fallback values and never prevent the row from being written.
    Only a missing link or user, or a store failure, aborts the call.
    """

    def __init__(
        self,
        link_store: LinkStore,
        user_store: UserStore,
        click_store: ClickStore,
        geolocation: GeolocationResolver,
        classifier: UserAgentClassifier,
    ):
        self._links = link_store
        self._users = user_store
        self._clicks = click_store
        self._geolocation = geolocation
        self._classifier = classifier

    async def record(
        self,
        link_id: UUID,
        user_id: UUID | None,
        headers: Mapping[str, str],
        remote_addr: str | None,
    ) -> ClickEvent:
        """Record a click against an existing link.

        Raises:
            NotFoundError: The link or the given user does not exist.
            StoreError: The click could not be persisted.
        """
        link = await self._checked(self._links.find_by_id(link_id))
        return await self._record_for(link, user_id, headers, remote_addr)

    async def record_by_short_code(
        self,
        short_code: str,
        user_id: UUID | None,
        headers: Mapping[str, str],
        remote_addr: str | None,
    ) -> ClickEvent:
        """Record a click against the link behind ``short_code``."""
        if not short_code or not short_code.strip():
            record_click_rejected("invalid_argument")
            raise InvalidArgumentError("Short code is required")

        link = await self._checked(
            self._links.find_by_short_code(short_code.strip()),
        )
        return await self._record_for(link, user_id, headers, remote_addr)

    async def _record_for(
        self,
        link: LinkRecord,
        user_id: UUID | None,
        headers: Mapping[str, str],
        remote_addr: str | None,
    ) -> ClickEvent:
        start_time = time.perf_counter()

        if user_id is not None:
            await self._checked(self._users.find_by_id(user_id))

        ip_address = resolve_client_ip(headers, remote_addr)
        user_agent = get_header(headers, "user-agent") or UNKNOWN_USER_AGENT

        # Classification runs in a worker thread while geolocation awaits the network
        location, classification = await asyncio.gather(
            self._geolocation.resolve(ip_address),
            asyncio.to_thread(self._classifier.classify, user_agent),
        )

        click = await self._checked(
            self._clicks.insert(
                NewClick(
                    link_id=link.id,
                    user_id=user_id,
                    ip_address=ip_address,
                    user_agent=user_agent,
                    country=location.country,
                    city=location.city,
                    device=classification.device,
                    browser=classification.browser,
                )
            ),
        )

        duration = time.perf_counter() - start_time
        record_click_recorded(duration)
        logger.info(
            "Click recorded",
            link_id=str(link.id),
            short_code=link.short_code,
            device=click.device,
            browser=click.browser,
            country=click.country,
            duration_ms=round(duration * 1000, 2),
        )
        return click

    async def _checked(self, operation):
        """Await a store call, counting rejections before re-raising."""
        try:
            return await operation
        except AnalyticsError as e:
            record_click_rejected(e.kind.value)
            raise
