"""Store exception hierarchy.

Absence of a key or field is never an error: lookups return None,
an empty string or an empty container instead.
"""


class StoreError(Exception):
    """Base error for store operations."""

    def __init__(self, operation: str, target: str, detail: str):
        self.operation = operation
        self.target = target
        self.detail = detail
        subject = f"{operation} {target}" if target else operation
        super().__init__(f"redis {subject} failed. Details: {detail}")


class StoreConnectionError(StoreError):
    """Address unreachable, dial/auth failure or db selection failure."""


class TransportError(StoreError):
    """A command round trip failed (network drop or error reply)."""


class StoreNotConnectedError(StoreError):
    """Operation issued before connect() or after close()."""

    def __init__(self, operation: str, target: str):
        super().__init__(operation, target, "store is not connected, call connect() first")
