"""
Connectivity monitors.

A cheap reachability probe used to skip doomed network attempts and go
straight to the cache when offline.
"""

import asyncio

from cryptosage.domain.ports.storage_port import ConnectivityPort
from cryptosage.infrastructure.logging import get_logger

logger = get_logger(__name__)


class TcpConnectivityMonitor(ConnectivityPort):
    """Reports online when a TCP connection to a well-known host succeeds."""

    def __init__(self, host: str = "1.1.1.1", port: int = 53, timeout: float = 2.0):
        self.host = host
        self.port = port
        self.timeout = timeout

    async def is_online(self) -> bool:
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port),
                timeout=self.timeout,
            )
        except (OSError, asyncio.TimeoutError) as e:
            logger.info("Connectivity probe failed", host=self.host, port=self.port, error=str(e))
            return False

        writer.close()
        try:
            await writer.wait_closed()
        except OSError as e:
            logger.debug("Probe connection close failed", error=str(e))
        return True


class StaticConnectivity(ConnectivityPort):
    """Fixed answer; used when probing is disabled."""

    def __init__(self, online: bool = True):
        self.online = online

    async def is_online(self) -> bool:
        return self.online
