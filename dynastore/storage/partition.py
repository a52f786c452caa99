"""
DynamoDB Partition
==================

A DynaTable view with the partition fixed, so calls only name the key.

Example:
    >>> users = session.table("kv").partition("users")
    >>> created = (await users.atomic_put("alice", write_with_string("v1"))).unwrap()
    >>> await users.atomic_put("alice", write_with_string("v2"),
    ...                        write_with_previous_kv(created))
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from dynastore.core.errors import DynastoreError
from dynastore.core.types import KVPair, KVPairPage, Result
from dynastore.storage.context import RequestContext
from dynastore.storage.options import ReadOption, WriteOption

if TYPE_CHECKING:
    from dynastore.storage.table import DynaTable


class DynaPartition:
    __slots__ = ("_table", "_partition")

    def __init__(self, table: DynaTable, partition: str) -> None:
        self._table = table
        self._partition = partition

    @property
    def table_name(self) -> str:
        return self._table.name

    @property
    def partition_name(self) -> str:
        return self._partition

    async def put(self, key: str, *opts: WriteOption) -> Result[None, DynastoreError]:
        return await self.put_with_context(RequestContext.background(), key, *opts)

    async def put_with_context(
        self, ctx: RequestContext, key: str, *opts: WriteOption
    ) -> Result[None, DynastoreError]:
        return await self._table.put_with_context(ctx, self._partition, key, *opts)

    async def get(self, key: str, *opts: ReadOption) -> Result[KVPair, DynastoreError]:
        return await self.get_with_context(RequestContext.background(), key, *opts)

    async def get_with_context(
        self, ctx: RequestContext, key: str, *opts: ReadOption
    ) -> Result[KVPair, DynastoreError]:
        return await self._table.get_with_context(ctx, self._partition, key, *opts)

    async def exists(self, key: str, *opts: ReadOption) -> Result[bool, DynastoreError]:
        return await self.exists_with_context(RequestContext.background(), key, *opts)

    async def exists_with_context(
        self, ctx: RequestContext, key: str, *opts: ReadOption
    ) -> Result[bool, DynastoreError]:
        return await self._table.exists_with_context(ctx, self._partition, key, *opts)

    async def delete(self, key: str) -> Result[None, DynastoreError]:
        return await self.delete_with_context(RequestContext.background(), key)

    async def delete_with_context(
        self, ctx: RequestContext, key: str
    ) -> Result[None, DynastoreError]:
        return await self._table.delete_with_context(ctx, self._partition, key)

    async def list(self, prefix: str, *opts: ReadOption) -> Result[list[KVPair], DynastoreError]:
        """Deprecated: see DynaTable.list_with_context, prefer list_page."""
        return await self.list_with_context(RequestContext.background(), prefix, *opts)

    async def list_with_context(
        self, ctx: RequestContext, prefix: str, *opts: ReadOption
    ) -> Result[list[KVPair], DynastoreError]:
        return await self._table.list_with_context(ctx, self._partition, prefix, *opts)

    async def list_page(
        self, prefix: str, *opts: ReadOption
    ) -> Result[KVPairPage, DynastoreError]:
        return await self.list_page_with_context(RequestContext.background(), prefix, *opts)

    async def list_page_with_context(
        self, ctx: RequestContext, prefix: str, *opts: ReadOption
    ) -> Result[KVPairPage, DynastoreError]:
        return await self._table.list_page_with_context(ctx, self._partition, prefix, *opts)

    async def atomic_put(self, key: str, *opts: WriteOption) -> Result[KVPair, DynastoreError]:
        return await self.atomic_put_with_context(RequestContext.background(), key, *opts)

    async def atomic_put_with_context(
        self, ctx: RequestContext, key: str, *opts: WriteOption
    ) -> Result[KVPair, DynastoreError]:
        return await self._table.atomic_put_with_context(ctx, self._partition, key, *opts)

    async def atomic_delete(
        self, key: str, previous: Optional[KVPair]
    ) -> Result[bool, DynastoreError]:
        """
        Delete `key` if its version still matches `previous`.

        Passing None when the key is live fails with KeyExistsError.
        """
        return await self.atomic_delete_with_context(
            RequestContext.background(), key, previous
        )

    async def atomic_delete_with_context(
        self, ctx: RequestContext, key: str, previous: Optional[KVPair]
    ) -> Result[bool, DynastoreError]:
        return await self._table.atomic_delete_with_context(
            ctx, self._partition, key, previous
        )

    def __repr__(self) -> str:
        return f"DynaPartition({self._table.name!r}, {self._partition!r})"
