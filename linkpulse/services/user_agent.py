"""User-agent classification into a coarse device type and browser name."""

from dataclasses import dataclass
from enum import Enum

import structlog
from user_agents import parse as parse_user_agent

logger = structlog.get_logger()


class UserAgentStrategy(str, Enum):
    """How raw user-agent strings are classified."""

    PARSER = "parser"  # structured parsing with the user-agents library
    CATALOG = "catalog"  # exact match against fixed token catalogs


@dataclass(frozen=True)
class Classification:
    device: str
    browser: str


PARSER_DEFAULT = Classification(device="desktop", browser="unknown")
CATALOG_DEFAULT = Classification(device="Desktop", browser="Chrome")

DEVICE_CATALOG = (
    "Desktop",
    "Mobile",
    "Tablet",
    "Smart TV",
    "Console",
    "Wearable",
)

BROWSER_CATALOG = (
    "Chrome",
    "Firefox",
    "Safari",
    "Edge",
    "Opera",
    "Brave",
    "Vivaldi",
    "Samsung Internet",
    "Internet Explorer",
)

AGENT_CATALOG: dict[str, Classification] = {
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36": Classification("Desktop", "Chrome"),
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.4 Safari/605.1.15": Classification("Desktop", "Safari"),
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:125.0) Gecko/20100101 "
    "Firefox/125.0": Classification("Desktop", "Firefox"),
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_4 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.4 Mobile/15E148 Safari/604.1": Classification("Mobile", "Safari"),
    "Mozilla/5.0 (Linux; Android 14; Pixel 8) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Mobile Safari/537.36": Classification("Mobile", "Chrome"),
    "Mozilla/5.0 (iPad; CPU OS 17_4 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.4 Mobile/15E148 Safari/604.1": Classification("Tablet", "Safari"),
}


def _catalog_lookup(token: str, catalog: tuple[str, ...]) -> str | None:
    lowered = token.lower()
    for entry in catalog:
        if entry.lower() == lowered:
            return entry
    return None


class UserAgentClassifier:
    """Maps a raw user-agent string to a ``Classification``.

    The contract holds for both strategies: a non-empty device and browser
    are always returned and no exception escapes.
    """

    def __init__(self, strategy: UserAgentStrategy = UserAgentStrategy.PARSER):
        self.strategy = UserAgentStrategy(strategy)
        self._agents = {agent.lower(): result for agent, result in AGENT_CATALOG.items()}

    def classify(self, user_agent: str | None) -> Classification:
        if self.strategy is UserAgentStrategy.CATALOG:
            return self._classify_catalog(user_agent or "")
        return self._classify_parsed(user_agent or "")

    def _classify_parsed(self, user_agent: str) -> Classification:
        if not user_agent.strip():
            return PARSER_DEFAULT

        try:
            ua = parse_user_agent(user_agent)
        except Exception as e:
            logger.debug("User agent parsing failed", user_agent=user_agent[:100], error=str(e))
            return PARSER_DEFAULT

        if ua.is_bot:
            device = "bot"
        elif ua.is_tablet:
            device = "tablet"
        elif ua.is_mobile:
            device = "mobile"
        else:
            device = PARSER_DEFAULT.device

        family = ua.browser.family
        browser = family if family and family != "Other" else PARSER_DEFAULT.browser
        return Classification(device=device, browser=browser)

    def _classify_catalog(self, user_agent: str) -> Classification:
        token = user_agent.strip()
        known = self._agents.get(token.lower())
        if known is not None:
            return known

        return Classification(
            device=_catalog_lookup(token, DEVICE_CATALOG) or CATALOG_DEFAULT.device,
            browser=_catalog_lookup(token, BROWSER_CATALOG) or CATALOG_DEFAULT.browser,
        )
