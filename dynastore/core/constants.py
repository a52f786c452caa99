"""
System-Wide Constants for dynastore

Attribute names, reserved fields and timing defaults centralized here.
"""

from types import MappingProxyType
from typing import Final, Mapping

# =============================================================================
# TABLE SCHEMA
# =============================================================================
# Hash key holding the partition name
DEFAULT_PARTITION_KEY_ATTRIBUTE: Final[str] = "id"
# Range key holding the record key
DEFAULT_SORT_KEY_ATTRIBUTE: Final[str] = "name"

VERSION_ATTRIBUTE: Final[str] = "version"
EXPIRES_ATTRIBUTE: Final[str] = "expires"
PAYLOAD_ATTRIBUTE: Final[str] = "payload"

# Reserved attribute names mapped to their wire type, "A" accepts any type
RESERVED_FIELDS: Final[Mapping[str, str]] = MappingProxyType({
    DEFAULT_PARTITION_KEY_ATTRIBUTE: "S",
    DEFAULT_SORT_KEY_ATTRIBUTE: "S",
    VERSION_ATTRIBUTE: "N",
    EXPIRES_ATTRIBUTE: "N",
    PAYLOAD_ATTRIBUTE: "A",
})

# =============================================================================
# OPERATIONS
# =============================================================================
# Deadline applied around the deprecated multi-page list
LIST_DEFAULT_TIMEOUT_SECONDS: Final[float] = 10.0

# botocore error code for a failed ConditionExpression
CONDITIONAL_CHECK_FAILED: Final[str] = "ConditionalCheckFailedException"

OP_PUT: Final[str] = "Put"
OP_GET: Final[str] = "Get"
OP_EXISTS: Final[str] = "Exists"
OP_DELETE: Final[str] = "Delete"
OP_LIST: Final[str] = "List"
OP_LIST_PAGE: Final[str] = "ListPage"
OP_ATOMIC_PUT: Final[str] = "AtomicPut"
OP_ATOMIC_DELETE: Final[str] = "AtomicDelete"

# =============================================================================
# CLIENT DEFAULTS
# =============================================================================
DEFAULT_REGION: Final[str] = "us-east-1"
DEFAULT_CONNECT_TIMEOUT_SECONDS: Final[int] = 5
DEFAULT_READ_TIMEOUT_SECONDS: Final[int] = 60
DEFAULT_MAX_RETRIES: Final[int] = 3
DEFAULT_MAX_POOL_CONNECTIONS: Final[int] = 10
