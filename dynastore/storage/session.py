"""
DynamoDB Session
================

Owns the aioboto3 DynamoDB client and the instrumentation hooks shared by
every table handed out from it.

Lifecycle:
    >>> session = DynaSession(DynamoConfig.from_env())
    >>> await session.connect()
    >>> kv = session.table("my-table").partition("users")
    >>> await kv.put("alice", write_with_string("hello"))
    >>> await session.close()

    or, equivalently, `async with DynaSession(config) as session: ...`

A session built with `with_client()` wraps a client owned by the caller
(any DynamoClient, including test doubles) and never closes it.

Thread Safety:
--------------
Tables and partitions are immutable views over the session; the client
itself is safe for concurrent coroutines.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError

from dynastore.core.config import DynamoConfig
from dynastore.core.errors import RemoteStoreError
from dynastore.core.types import Err, Ok, Result
from dynastore.storage.hooks import DEFAULT_HOOKS, StoreHooks
from dynastore.storage.protocols import DynamoClient
from dynastore.storage.table import DynaTable

logger = logging.getLogger(__name__)


class DynaSession:
    """
    Entry point: a connection to DynamoDB plus shared hooks.

    Example:
        >>> async with DynaSession(DynamoConfig(endpoint_url="http://localhost:8000")) as s:
        ...     table = s.table("kv")
    """

    __slots__ = (
        "_config",
        "_hooks",
        "_session",
        "_client",
        "_owns_client",
    )

    def __init__(
        self,
        config: Optional[DynamoConfig] = None,
        hooks: Optional[StoreHooks] = None,
    ) -> None:
        """
        Args:
            config: Client configuration, defaults to DynamoConfig().
            hooks: Instrumentation hooks, defaults to a no-op.

        Note:
            Call `connect()` before performing operations.
        """
        self._config = config or DynamoConfig()
        self._hooks = hooks or DEFAULT_HOOKS
        self._session: Any = None
        self._client: Optional[DynamoClient] = None
        self._owns_client = True

    @classmethod
    def with_client(
        cls,
        client: DynamoClient,
        hooks: Optional[StoreHooks] = None,
    ) -> DynaSession:
        """Wrap an already-open client; close() leaves it open."""
        session = cls(hooks=hooks)
        session._client = client
        session._owns_client = False
        return session

    # -------------------------------------------------------------------------
    # CONNECTION MANAGEMENT
    # -------------------------------------------------------------------------

    async def connect(self) -> Result[None, RemoteStoreError]:
        """
        Create the aioboto3 session and DynamoDB client.

        No request is sent; credentials and reachability are checked by the
        first operation. Connecting an already-connected session is a no-op.
        """
        if self._client is not None:
            return Ok(None)

        try:
            self._session = aioboto3.Session(**self._config.get_session_kwargs())
            self._client = await self._session.client(
                "dynamodb", **self._config.get_client_kwargs()
            ).__aenter__()
        except (BotoCoreError, ClientError, ValueError) as e:
            logger.error(f"DynamoDB client creation failed: {e}")
            return Err(RemoteStoreError.call_failed("connect", "", e))

        logger.info(
            f"DynamoDB client ready (region={self._config.region}, "
            f"endpoint={self._config.endpoint_url or 'default'})"
        )
        return Ok(None)

    async def close(self) -> None:
        """
        Close the DynamoDB client and release its connection pool.

        Safe to call multiple times.
        """
        if self._client is not None and self._owns_client:
            await self._client.__aexit__(None, None, None)
            logger.info("DynamoDB client closed")
        self._client = None

    async def __aenter__(self) -> DynaSession:
        result = await self.connect()
        result.unwrap()
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # ACCESSORS
    # -------------------------------------------------------------------------

    @property
    def client(self) -> Optional[DynamoClient]:
        """The open client, None before connect() or after close()."""
        return self._client

    @property
    def connected(self) -> bool:
        return self._client is not None

    @property
    def hooks(self) -> StoreHooks:
        return self._hooks

    @property
    def config(self) -> DynamoConfig:
        return self._config

    def table(self, name: str) -> DynaTable:
        """Handle on a table; no request is made."""
        return DynaTable(self, name)
