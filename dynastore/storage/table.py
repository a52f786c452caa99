"""
DynamoDB Table
==============

Table-scoped operations: every call names the partition explicitly.
DynaPartition is a thin view that fixes the partition.

Operations:
-----------
| Operation      | Remote calls          | Condition                          |
|----------------|-----------------------|------------------------------------|
| put            | UpdateItem            | none (upsert, version + 1)         |
| get / exists   | GetItem               | -                                  |
| delete         | DeleteItem            | none                               |
| list_page      | Query                 | -                                  |
| list           | Query (all pages)     | -                                  |
| atomic_put     | UpdateItem            | create or version match            |
| atomic_delete  | GetItem + DeleteItem  | version match                      |

Every operation has a `*_with_context` form taking a RequestContext; the
plain form uses RequestContext.background(). The instrumentation hook
runs immediately before each remote call and every remote call is
bounded by the context deadline.

Expiry:
-------
Items whose `expires` is at or before the current Unix second are
treated as absent by get, exists, list and atomic_delete. list_page
returns them as stored; callers can filter with KVPair.is_expired().
"""

from __future__ import annotations

import asyncio
import logging
import time
import warnings
from typing import TYPE_CHECKING, Any, Optional

from botocore.exceptions import BotoCoreError, ClientError

from dynastore.core import constants as C
from dynastore.core.errors import (
    DynastoreError,
    IndexNotSupportedError,
    KeyExistsError,
    KeyModifiedError,
    KeyNotFoundError,
    OperationTimeoutError,
    RemoteStoreError,
)
from dynastore.core.types import AttributeMap, Err, KVPair, KVPairPage, Ok, Result
from dynastore.storage.codec import build_keys, decode_item, is_item_expired
from dynastore.storage.context import RequestContext, operation_name
from dynastore.storage.cursor import decode_cursor, encode_cursor
from dynastore.storage.expressions import (
    ExpressionBuilder,
    build_update,
    delete_condition,
    key_condition,
    update_condition,
)
from dynastore.storage.options import (
    ReadOption,
    ReadOptions,
    WriteOption,
    new_read_options,
    new_write_options,
    validate_write_options,
)
from dynastore.storage.partition import DynaPartition

if TYPE_CHECKING:
    from dynastore.storage.session import DynaSession

logger = logging.getLogger(__name__)


def _now() -> float:
    """Current Unix time in seconds."""
    return time.time()


def resolve_key_attributes(options: ReadOptions) -> tuple[str, str]:
    """(partition attribute, sort attribute) addressed by a query."""
    partition_attr = C.DEFAULT_PARTITION_KEY_ATTRIBUTE
    sort_attr = C.DEFAULT_SORT_KEY_ATTRIBUTE
    if options.has_index:
        sort_attr = options.index.sort_attribute
        if options.index.partition_attribute is not None:
            partition_attr = options.index.partition_attribute
    return partition_attr, sort_attr


def _is_condition_failure(error: DynastoreError) -> bool:
    return error.context.get("aws_error_code") == C.CONDITIONAL_CHECK_FAILED


class DynaTable:
    """
    Handle on one DynamoDB table.

    The table must have a string hash key `id` and a string range key
    `name`; enable TTL on the `expires` attribute to have the store purge
    expired records.
    """

    __slots__ = ("_session", "_name")

    def __init__(self, session: DynaSession, name: str) -> None:
        self._session = session
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    def partition(self, name: str) -> DynaPartition:
        """View of this table fixed to one partition."""
        return DynaPartition(self, name)

    # -------------------------------------------------------------------------
    # REMOTE CALLS
    # -------------------------------------------------------------------------

    async def _call(
        self,
        ctx: RequestContext,
        method: str,
        params: dict[str, Any],
    ) -> Result[dict[str, Any], RemoteStoreError]:
        """Run the hook, then one client call bounded by the context deadline."""
        operation = operation_name(ctx)
        client = self._session.client
        if client is None:
            return Err(RemoteStoreError.not_connected(operation))

        ctx = self._session.hooks.request_built(ctx, params)

        timeout = ctx.remaining()
        if timeout is not None and timeout <= 0:
            return Err(OperationTimeoutError.deadline_exceeded(operation, self._name, 0.0))

        try:
            response = await asyncio.wait_for(
                getattr(client, method)(**params), timeout=timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"{operation} on {self._name} timed out after {timeout:.3f}s")
            return Err(OperationTimeoutError.deadline_exceeded(operation, self._name, timeout))
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code != C.CONDITIONAL_CHECK_FAILED:
                logger.error(f"{operation} on {self._name} failed: {code} {e}")
            return Err(RemoteStoreError.call_failed(operation, self._name, e, error_code=code))
        except BotoCoreError as e:
            logger.error(f"{operation} on {self._name} failed: {e}")
            return Err(RemoteStoreError.call_failed(operation, self._name, e))

        return Ok(response)

    async def _get_item(
        self,
        ctx: RequestContext,
        partition: str,
        key: str,
        consistent: bool,
    ) -> Result[Optional[AttributeMap], RemoteStoreError]:
        result = await self._call(ctx, "get_item", {
            "TableName": self._name,
            "Key": build_keys(partition, key),
            "ConsistentRead": consistent,
        })
        if result.is_err():
            return result
        return Ok(result.value.get("Item") or None)

    async def _query(
        self,
        ctx: RequestContext,
        partition: str,
        prefix: str,
        options: ReadOptions,
        start_key: Optional[AttributeMap],
    ) -> Result[dict[str, Any], RemoteStoreError]:
        partition_attr, sort_attr = resolve_key_attributes(options)
        expr = (
            ExpressionBuilder()
            .with_key_condition(key_condition(partition_attr, partition, sort_attr, prefix))
            .build()
        )
        is_global = options.has_index and options.index.is_global
        params: dict[str, Any] = {
            "TableName": self._name,
            **expr.to_params(),
            # Global indexes reject strongly consistent reads
            "ConsistentRead": options.consistent and not is_global,
            "ScanIndexForward": options.scan_forward,
        }
        if options.limit is not None:
            params["Limit"] = options.limit
        if options.has_index:
            params["IndexName"] = options.index.name
        if start_key:
            params["ExclusiveStartKey"] = start_key
        return await self._call(ctx, "query", params)

    # -------------------------------------------------------------------------
    # PUT
    # -------------------------------------------------------------------------

    async def put(
        self, partition: str, key: str, *opts: WriteOption
    ) -> Result[None, DynastoreError]:
        return await self.put_with_context(RequestContext.background(), partition, key, *opts)

    async def put_with_context(
        self,
        ctx: RequestContext,
        partition: str,
        key: str,
        *opts: WriteOption,
    ) -> Result[None, DynastoreError]:
        """
        Unconditional upsert; the stored version is incremented.

        Any previous record in the options is ignored, use atomic_put for
        compare-and-swap.
        """
        ctx = ctx.with_operation_name(C.OP_PUT)
        options = validate_write_options(new_write_options(*opts))
        if options.is_err():
            return options

        update = build_update(options.value, _now())
        if update.is_err():
            return update

        expr = ExpressionBuilder().with_update(update.value).build()
        result = await self._call(ctx, "update_item", {
            "TableName": self._name,
            "Key": build_keys(partition, key),
            "ReturnValues": "ALL_NEW",
            **expr.to_params(),
        })
        if result.is_err():
            return result
        return Ok(None)

    # -------------------------------------------------------------------------
    # GET / EXISTS
    # -------------------------------------------------------------------------

    async def get(
        self, partition: str, key: str, *opts: ReadOption
    ) -> Result[KVPair, DynastoreError]:
        return await self.get_with_context(RequestContext.background(), partition, key, *opts)

    async def get_with_context(
        self,
        ctx: RequestContext,
        partition: str,
        key: str,
        *opts: ReadOption,
    ) -> Result[KVPair, DynastoreError]:
        """
        Point read of one record.

        Returns:
            Ok(KVPair), Err(KeyNotFoundError) when absent or expired,
            Err(IndexNotSupportedError) when an index option is given.
        """
        ctx = ctx.with_operation_name(C.OP_GET)
        options = new_read_options(*opts)
        if options.has_index:
            return Err(IndexNotSupportedError.for_operation(C.OP_GET, options.index.name))

        result = await self._get_item(ctx, partition, key, options.consistent)
        if result.is_err():
            return result

        item = result.value
        if item is None or is_item_expired(item, _now()):
            return Err(KeyNotFoundError.for_key(self._name, partition, key, C.OP_GET))
        return decode_item(item)

    async def exists(
        self, partition: str, key: str, *opts: ReadOption
    ) -> Result[bool, DynastoreError]:
        return await self.exists_with_context(
            RequestContext.background(), partition, key, *opts
        )

    async def exists_with_context(
        self,
        ctx: RequestContext,
        partition: str,
        key: str,
        *opts: ReadOption,
    ) -> Result[bool, DynastoreError]:
        """Like get, with absence and expiry reported as Ok(False)."""
        ctx = ctx.with_operation_name(C.OP_EXISTS)
        options = new_read_options(*opts)
        if options.has_index:
            return Err(IndexNotSupportedError.for_operation(C.OP_EXISTS, options.index.name))

        result = await self._get_item(ctx, partition, key, options.consistent)
        if result.is_err():
            return result

        item = result.value
        return Ok(item is not None and not is_item_expired(item, _now()))

    # -------------------------------------------------------------------------
    # DELETE
    # -------------------------------------------------------------------------

    async def delete(self, partition: str, key: str) -> Result[None, DynastoreError]:
        return await self.delete_with_context(RequestContext.background(), partition, key)

    async def delete_with_context(
        self,
        ctx: RequestContext,
        partition: str,
        key: str,
    ) -> Result[None, DynastoreError]:
        """Unconditional delete; deleting an absent key succeeds."""
        ctx = ctx.with_operation_name(C.OP_DELETE)
        result = await self._call(ctx, "delete_item", {
            "TableName": self._name,
            "Key": build_keys(partition, key),
        })
        if result.is_err():
            return result
        return Ok(None)

    # -------------------------------------------------------------------------
    # LISTING
    # -------------------------------------------------------------------------

    async def list_page(
        self, partition: str, prefix: str, *opts: ReadOption
    ) -> Result[KVPairPage, DynastoreError]:
        return await self.list_page_with_context(
            RequestContext.background(), partition, prefix, *opts
        )

    async def list_page_with_context(
        self,
        ctx: RequestContext,
        partition: str,
        prefix: str,
        *opts: ReadOption,
    ) -> Result[KVPairPage, DynastoreError]:
        """
        One page of records whose sort key starts with `prefix`.

        With read_with_global_index(), `partition` is the value of the
        index's partition attribute. Expired records are not filtered.

        Returns:
            Ok(KVPairPage) whose last_key resumes the listing via
            read_with_start_key(), empty on the final page.
        """
        ctx = ctx.with_operation_name(C.OP_LIST_PAGE)
        options = new_read_options(*opts)

        start_key: Optional[AttributeMap] = None
        if options.start_key:
            decoded = decode_cursor(options.start_key)
            if decoded.is_err():
                return decoded
            start_key = decoded.value

        result = await self._query(ctx, partition, prefix, options, start_key)
        if result.is_err():
            return result
        response = result.value

        keys: list[KVPair] = []
        for item in response.get("Items", []):
            pair = decode_item(item)
            if pair.is_err():
                return pair
            keys.append(pair.value)

        last_key = ""
        if response.get("LastEvaluatedKey"):
            cursor = encode_cursor(response["LastEvaluatedKey"])
            if cursor.is_err():
                return cursor
            last_key = cursor.value

        return Ok(KVPairPage(keys=keys, last_key=last_key))

    async def list(
        self, partition: str, prefix: str, *opts: ReadOption
    ) -> Result[list[KVPair], DynastoreError]:
        return await self.list_with_context(
            RequestContext.background(), partition, prefix, *opts
        )

    async def list_with_context(
        self,
        ctx: RequestContext,
        partition: str,
        prefix: str,
        *opts: ReadOption,
    ) -> Result[list[KVPair], DynastoreError]:
        """
        Every live record under `prefix`, fetched page by page.

        Deprecated: the whole scan is bounded by a fixed 10 second deadline
        (or the caller's, if earlier), which fails large partitions. Use
        list_page.

        Returns:
            Ok(records) in sort key order without expired records,
            Err(KeyNotFoundError) when the query matched nothing at all.
        """
        warnings.warn(
            "list is deprecated, use list_page",
            DeprecationWarning,
            stacklevel=2,
        )
        ctx = (
            ctx.with_operation_name(C.OP_LIST)
            .with_timeout(C.LIST_DEFAULT_TIMEOUT_SECONDS)
        )
        options = new_read_options(*opts)

        items: list[AttributeMap] = []
        start_key: Optional[AttributeMap] = None
        while True:
            result = await self._query(ctx, partition, prefix, options, start_key)
            if result.is_err():
                return result
            items.extend(result.value.get("Items", []))
            start_key = result.value.get("LastEvaluatedKey")
            if not start_key:
                break

        if not items:
            return Err(KeyNotFoundError.for_prefix(self._name, partition, prefix))

        now = _now()
        pairs: list[KVPair] = []
        for item in items:
            pair = decode_item(item)
            if pair.is_err():
                return pair
            if is_item_expired(item, now):
                continue
            pairs.append(pair.value)

        logger.debug(
            f"List {self._name}/{partition}/{prefix!r}: "
            f"{len(pairs)} live of {len(items)} items"
        )
        return Ok(pairs)

    # -------------------------------------------------------------------------
    # COMPARE-AND-SWAP
    # -------------------------------------------------------------------------

    async def atomic_put(
        self, partition: str, key: str, *opts: WriteOption
    ) -> Result[KVPair, DynastoreError]:
        return await self.atomic_put_with_context(
            RequestContext.background(), partition, key, *opts
        )

    async def atomic_put_with_context(
        self,
        ctx: RequestContext,
        partition: str,
        key: str,
        *opts: WriteOption,
    ) -> Result[KVPair, DynastoreError]:
        """
        Conditional write.

        Without write_with_previous_kv() the write is a create that
        succeeds only if the key is absent or expired. With it, the stored
        version must equal previous.version and the record must be live.

        Returns:
            Ok(new record), Err(KeyExistsError) when a create finds a live
            record, Err(KeyModifiedError) when an update loses the race.
        """
        ctx = ctx.with_operation_name(C.OP_ATOMIC_PUT)
        options = validate_write_options(new_write_options(*opts))
        if options.is_err():
            return options
        write = options.value

        now = _now()
        update = build_update(write, now)
        if update.is_err():
            return update

        expr = (
            ExpressionBuilder()
            .with_update(update.value)
            .with_condition(update_condition(write.previous, now))
            .build()
        )
        result = await self._call(ctx, "update_item", {
            "TableName": self._name,
            "Key": build_keys(partition, key),
            "ReturnValues": "ALL_NEW",
            **expr.to_params(),
        })
        if result.is_err():
            if _is_condition_failure(result.error):
                if write.previous is None:
                    return Err(KeyExistsError.for_key(
                        self._name, partition, key, C.OP_ATOMIC_PUT
                    ))
                return Err(KeyModifiedError.for_key(
                    self._name, partition, key, write.previous.version
                ))
            return result

        return decode_item(result.value.get("Attributes", {}))

    async def atomic_delete(
        self, partition: str, key: str, previous: Optional[KVPair]
    ) -> Result[bool, DynastoreError]:
        return await self.atomic_delete_with_context(
            RequestContext.background(), partition, key, previous
        )

    async def atomic_delete_with_context(
        self,
        ctx: RequestContext,
        partition: str,
        key: str,
        previous: Optional[KVPair],
    ) -> Result[bool, DynastoreError]:
        """
        Delete only if the stored version still matches `previous`.

        The existence check and the delete are two calls, so a concurrent
        writer may slip in between; the version condition still protects
        the delete itself.

        Returns:
            Ok(True) on delete, Err(KeyExistsError) when `previous` is None
            but the key is live, Err(KeyNotFoundError) when the version
            condition fails (deleted, rewritten, or never written).
        """
        ctx = ctx.with_operation_name(C.OP_ATOMIC_DELETE)

        current = await self._get_item(ctx, partition, key, consistent=True)
        if current.is_err():
            return current

        item = current.value
        if previous is None and item is not None and not is_item_expired(item, _now()):
            return Err(KeyExistsError.for_key(self._name, partition, key, C.OP_ATOMIC_DELETE))

        expr = ExpressionBuilder().with_condition(delete_condition(previous)).build()
        result = await self._call(ctx, "delete_item", {
            "TableName": self._name,
            "Key": build_keys(partition, key),
            **expr.to_params(),
        })
        if result.is_err():
            if _is_condition_failure(result.error):
                return Err(KeyNotFoundError.for_key(
                    self._name, partition, key, C.OP_ATOMIC_DELETE
                ))
            return result

        return Ok(True)

    def __repr__(self) -> str:
        return f"DynaTable({self._name!r})"
