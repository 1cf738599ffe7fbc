# product_visuals/services/utils/http_client.py
import aiohttp


class _HttpClient:
    """Shared HTTP session for downloading reference images."""
    def __init__(
        self, timeout_connect: float = 5.0, timeout_read: float = 30.0, limit: int = 50
    ) -> None:
        self._timeout_connect = timeout_connect
        self._timeout_read = timeout_read
        self._limit = limit
        self._session: aiohttp.ClientSession | None = None

    async def session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(
                total=None, connect=self._timeout_connect, sock_read=self._timeout_read
            )
            connector = aiohttp.TCPConnector(limit=self._limit, ttl_dns_cache=60)
            self._session = aiohttp.ClientSession(
                timeout=timeout, connector=connector, trust_env=True
            )
        return self._session

    async def fetch_bytes(self, url: str) -> tuple[bytes, str]:
        """Returns (body, content type). Raises aiohttp.ClientError on HTTP errors."""
        session = await self.session()
        async with session.get(url) as resp:
            resp.raise_for_status()
            return await resp.read(), resp.headers.get("Content-Type", "image/png")

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()


http_client = _HttpClient()
