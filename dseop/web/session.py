import aiohttp
from typing import Any, Dict, Mapping, Optional, Union
from yarl import URL

from .error import AuthenticationError, NotFoundError

HEADERS = {
    "Accept": "*/*",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
}

"""Default timeout in seconds"""
TIMEOUT: float = 10


class SessionManager:
    """Thin wrapper around an `aiohttp.ClientSession`."""

    def __init__(
        self,
        headers: Optional[Mapping] = None,
        timeout: float = TIMEOUT,
    ) -> None:
        merged_headers = dict(**HEADERS)
        merged_headers.update(headers or {})
        self.headers = merged_headers
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def session(self) -> aiohttp.ClientSession:
        # Created on first use so that it binds to the running event loop.
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(headers=self.headers)
        return self._session

    async def get(
        self,
        url: Union[str, URL],
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Mapping] = None,
        raise_errors: bool = True,
        timeout: Optional[float] = None,
    ) -> Any:
        """Run a wrapped session HTTP GET request.
        Args:
            url: The url to get from.
            params: query string parameters
            headers: A dict adding to and overriding the session headers.
            raise_errors: Whether or not raise errors on GET request result.
            timeout: Total timeout in seconds, defaults to the session timeout.
        Returns:
            The decoded JSON body when the response is JSON, otherwise its text.
        Raises:
            AuthenticationError: On 401 and 403 responses.
            NotFoundError: On 404 responses.
            aiohttp.ClientError: On transport errors and, when `raise_errors`
                is set, on any other non 2xx response.
            asyncio.TimeoutError: When the request exceeds the timeout.
        """
        client_timeout = aiohttp.ClientTimeout(
            total=self.timeout if timeout is None else timeout
        )
        async with self.session.get(
            str(url),
            params=params or {},
            headers=headers or {},
            timeout=client_timeout,
        ) as res:
            if res.status == 401:
                raise AuthenticationError("Unauthorized")
            if res.status == 403:
                raise AuthenticationError("Forbidden")
            if res.status == 404:
                raise NotFoundError("Not found")
            if raise_errors:
                res.raise_for_status()
            if res.content_type == "application/json":
                return await res.json()
            return await res.text()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}<timeout={self.timeout}>"

    async def close(self) -> None:
        """Close the underlying session"""
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
