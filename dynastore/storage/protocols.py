"""
Client Protocol Definitions

Structural type (PEP 544) for the low-level DynamoDB client dynastore
calls into. An aioboto3 `session.client("dynamodb")` satisfies it, as does
any test double exposing the same four coroutines.

Every method takes the low-level API's keyword parameters (TableName,
Key, ConditionExpression, ...) and returns the raw response dict.
Condition failures surface as botocore ClientError with the code
ConditionalCheckFailedException.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class DynamoClient(Protocol):
    """The subset of the DynamoDB low-level API used by dynastore."""

    @abstractmethod
    async def get_item(self, **kwargs: Any) -> dict[str, Any]:
        """GetItem: returns {"Item": {...}} or {} when absent."""
        ...

    @abstractmethod
    async def update_item(self, **kwargs: Any) -> dict[str, Any]:
        """UpdateItem: returns {"Attributes": {...}} with ReturnValues=ALL_NEW."""
        ...

    @abstractmethod
    async def delete_item(self, **kwargs: Any) -> dict[str, Any]:
        ...

    @abstractmethod
    async def query(self, **kwargs: Any) -> dict[str, Any]:
        """Query: returns {"Items": [...], "LastEvaluatedKey": {...}?}."""
        ...
