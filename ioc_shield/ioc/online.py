"""Online IoC list client for IoCShield."""

import asyncio
import ssl
from typing import Optional

import aiohttp
import certifi
from aiohttp import ClientTimeout

from ..core.ioc_table import IoCTable
from ..exceptions import IoCSourceError
from ..utils.logging import get_logger
from .rows import build_ioc_table

DEFAULT_IOC_URL = (
    "https://raw.githubusercontent.com/wiz-sec-public/wiz-research-iocs/"
    "main/reports/shai-hulud-2-packages.csv"
)


class IoCOnlineClient:
    """Async client fetching the IoC package CSV over HTTPS."""

    TIMEOUT = ClientTimeout(total=30)

    def __init__(
        self,
        url: Optional[str] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        """Initialize the IoC online client.

        Args:
            url: CSV location, defaults to DEFAULT_IOC_URL
            session: Optional aiohttp session for connection reuse; it is not
                closed by this client
        """
        self.url = url or DEFAULT_IOC_URL
        self.logger = get_logger("IoCOnlineClient")
        self._session = session
        self._owns_session = session is None
        self._ssl_context = ssl.create_default_context(cafile=certifi.where())

    async def __aenter__(self) -> "IoCOnlineClient":
        """Async context manager entry."""
        self._get_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """Close the session if this client created it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session.

        Returns:
            aiohttp ClientSession
        """
        if not self._session or self._session.closed:
            connector = aiohttp.TCPConnector(ssl=self._ssl_context)
            self._session = aiohttp.ClientSession(
                timeout=self.TIMEOUT,
                connector=connector
            )
            self._owns_session = True
        return self._session

    async def fetch_csv(self) -> str:
        """Download the CSV document.

        Returns:
            Response body

        Raises:
            IoCSourceError: On a non-200 response or a transport failure
        """
        self.logger.info(f"Fetching IoC list from {self.url}")
        session = self._get_session()

        try:
            async with session.get(self.url) as response:
                if response.status != 200:
                    raise IoCSourceError(
                        f"Failed to fetch IoC list: HTTP {response.status} from {self.url}"
                    )
                return await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise IoCSourceError(f"Failed to fetch IoC list from {self.url}: {e}") from e

    async def fetch_table(self) -> IoCTable:
        """Download the CSV and build the IoC table."""
        table = build_ioc_table(await self.fetch_csv())
        self.logger.info(f"Loaded {table.count()} compromised packages ({table.size()} versions)")
        return table


def fetch_ioc_table(url: Optional[str] = None) -> IoCTable:
    """Synchronously fetch the IoC list and build the table.

    Args:
        url: CSV location, defaults to DEFAULT_IOC_URL

    Returns:
        The IoC table

    Raises:
        IoCSourceError: If the list cannot be fetched
    """

    async def _fetch() -> IoCTable:
        async with IoCOnlineClient(url) as client:
            return await client.fetch_table()

    return asyncio.run(_fetch())
