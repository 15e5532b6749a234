"""Geolocation service for IP to location lookup."""

import asyncio
import time
from dataclasses import dataclass
from pathlib import Path

import geoip2.database
import geoip2.errors
import httpx
import maxminddb
import structlog

from linkpulse.core.errors import UpstreamUnavailableError
from linkpulse.core.observability import record_geolocation
from linkpulse.services.ip_resolver import is_local_address

logger = structlog.get_logger()

UNKNOWN = "unknown"


@dataclass(frozen=True)
class GeoLocation:
    """Geographic location data from IP lookup.

    ``None`` means no lookup was attempted; ``"unknown"`` means the lookup ran
    but the field could not be determined.
    """

    country: str | None = None
    city: str | None = None


NOT_RESOLVED = GeoLocation()


class GeolocationResolver:
    """Service for looking up geographic location from IP addresses.

    Supports two backends:
    1. GeoIP2 database (MaxMind) - when a database path is configured
    2. An HTTP geolocation endpoint answering ``{"location": {...}}``

    The HTTP backend makes at most two calls per resolution: the lookup
    itself and, when self discovery is enabled, one call without an ``ip``
    parameter so the service geolocates the caller's own public address.
    Every failure ends in ``default_location``; ``resolve`` never raises.

    Usage:
        async with httpx.AsyncClient() as client:
            resolver = GeolocationResolver(client, endpoint="https://geo.example/ipgeo")
            location = await resolver.resolve("8.8.8.8")
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        endpoint: str,
        timeout: float = 4.0,
        self_discovery: bool = False,
        default_location: GeoLocation = GeoLocation(UNKNOWN, UNKNOWN),
        geoip_database_path: str = "",
    ):
        """Initialize the resolver.

        Args:
            client: Shared HTTP client.
            endpoint: Geolocation endpoint for the deployment environment.
            timeout: Upper bound in seconds for each HTTP call.
            self_discovery: Whether to retry once without the ``ip`` parameter.
            default_location: Returned when every lookup path failed.
            geoip_database_path: Path to a GeoIP2 city database. When the file
                exists, lookups are served locally and no HTTP call is made.
        """
        self._client = client
        self._endpoint = endpoint
        self._timeout = timeout
        self._self_discovery = self_discovery
        self._default_location = default_location
        self._geoip_reader: geoip2.database.Reader | None = None

        if geoip_database_path:
            self._init_geoip2(geoip_database_path)

    def _init_geoip2(self, database_path: str) -> None:
        """Initialize GeoIP2 database reader."""
        path = Path(database_path)
        if not path.exists():
            logger.warning("GeoIP2 database not found", path=str(path))
            return

        try:
            self._geoip_reader = geoip2.database.Reader(str(path))
            logger.info("GeoIP2 database loaded", path=str(path))
        except (OSError, maxminddb.InvalidDatabaseError) as e:
            logger.error("Failed to load GeoIP2 database", path=str(path), error=str(e))

    async def resolve(self, ip_address: str | None) -> GeoLocation:
        """Look up geographic location for an IP address.

        Args:
            ip_address: IP address to look up.

        Returns:
            ``GeoLocation(None, None)`` for local addresses, otherwise the
            resolved or default location.
        """
        start_time = time.perf_counter()

        if is_local_address(ip_address):
            record_geolocation("skipped", time.perf_counter() - start_time)
            return NOT_RESOLVED

        if self._geoip_reader:
            location, outcome = await self._lookup_geoip2(ip_address)
        else:
            location, outcome = await self._lookup_remote(ip_address)

        duration = time.perf_counter() - start_time
        record_geolocation(outcome, duration)
        logger.debug(
            "Geolocation resolved",
            ip=ip_address,
            outcome=outcome,
            duration_ms=round(duration * 1000, 2),
        )
        return location

    async def _lookup_geoip2(self, ip_address: str) -> tuple[GeoLocation, str]:
        """Look up location using the GeoIP2 database."""
        try:
            response = await asyncio.to_thread(self._geoip_reader.city, ip_address)
        except (
            geoip2.errors.GeoIP2Error,
            ValueError,
            TypeError,
            maxminddb.InvalidDatabaseError,
        ) as e:
            # TypeError: the configured file is not a city database
            logger.debug("GeoIP2 lookup failed", ip=ip_address, error=str(e))
            return self._default_location, "default"

        return GeoLocation(
            country=response.country.name or UNKNOWN,
            city=response.city.name or UNKNOWN,
        ), "success"

    async def _lookup_remote(self, ip_address: str) -> tuple[GeoLocation, str]:
        """Look up location over HTTP with the single self-discovery fallback."""
        try:
            return await self._fetch({"ip": ip_address}), "success"
        except UpstreamUnavailableError as e:
            logger.warning("Geolocation lookup failed", ip=ip_address, **e.details)

        if self._self_discovery:
            try:
                return await self._fetch(None), "self_discovery"
            except UpstreamUnavailableError as e:
                logger.warning("Geolocation self discovery failed", **e.details)

        return self._default_location, "default"

    async def _fetch(self, params: dict[str, str] | None) -> GeoLocation:
        """One bounded call to the geolocation endpoint.

        Raises:
            UpstreamUnavailableError: On network errors, timeouts, non-2xx
                responses and bodies that are not a JSON object.
        """
        try:
            response = await asyncio.wait_for(
                self._client.get(self._endpoint, params=params, timeout=self._timeout),
                timeout=self._timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, asyncio.TimeoutError, ValueError) as e:
            raise UpstreamUnavailableError(
                "Geolocation service unavailable",
                details={"error": str(e) or type(e).__name__},
            ) from e

        if not isinstance(data, dict):
            raise UpstreamUnavailableError(
                "Geolocation service returned an unexpected body",
                details={"error": f"expected object, got {type(data).__name__}"},
            )

        location = data.get("location")
        if not isinstance(location, dict):
            location = {}

        return GeoLocation(
            country=location.get("country_name") or UNKNOWN,
            city=location.get("city") or UNKNOWN,
        )

    def close(self) -> None:
        """Close the GeoIP2 database reader."""
        if self._geoip_reader:
            self._geoip_reader.close()
            self._geoip_reader = None
