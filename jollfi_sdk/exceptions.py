"""
Exceptions for the Jollfi SDK.

Every error raised by the SDK derives from :class:`JollfiError` and carries
an :class:`ErrorCode` so that callers (typically an HTTP layer) can map
failures to responses without inspecting messages.
"""
from enum import Enum
from typing import Any, Optional


class ErrorCode(str, Enum):
    """
    Machine-readable error codes surfaced in service responses.
    """
    UNKNOWN = "UNKNOWN"
    INVALID_REQUEST = "INVALID_REQUEST"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    TRANSPORT_ERROR = "TRANSPORT_ERROR"
    TRANSPORT_TIMEOUT = "TRANSPORT_TIMEOUT"
    RPC_ERROR = "RPC_ERROR"
    INSUFFICIENT_COINS = "INSUFFICIENT_COINS"
    NO_GAS_COIN = "NO_GAS_COIN"
    TRANSACTION_FAILED = "TRANSACTION_FAILED"
    STORAGE_ERROR = "STORAGE_ERROR"


class JollfiError(Exception):
    """Base exception for all SDK errors."""
    code = ErrorCode.UNKNOWN


class InvalidRequestError(JollfiError, ValueError):
    """Raised when local validation fails. Never reaches the network."""
    code = ErrorCode.INVALID_REQUEST


class InvalidStakeRequestError(InvalidRequestError):
    """Raised when stake arguments are missing or out of range."""
    pass


class InvalidPayWinnerRequestError(InvalidRequestError):
    """Raised when pay-winner arguments are missing or out of range."""
    pass


class InvalidParametersError(InvalidRequestError):
    """Raised when a transaction builder receives no call descriptor."""
    pass


class ConfigurationError(JollfiError, ValueError):
    """Raised when configuration or key material is unusable."""
    code = ErrorCode.CONFIGURATION_ERROR


class TransportError(JollfiError):
    """Raised on network failures, malformed bodies and undecodable responses."""
    code = ErrorCode.TRANSPORT_ERROR


class TransportTimeoutError(TransportError):
    """Raised when an outbound call exceeds its timeout."""
    code = ErrorCode.TRANSPORT_TIMEOUT


class RemoteRPCError(JollfiError):
    """Raised when the node answers with a JSON-RPC error object."""
    code = ErrorCode.RPC_ERROR

    def __init__(self, rpc_code: int, message: str, method: Optional[str] = None, data: Any = None):
        self.rpc_code = rpc_code
        self.rpc_message = message
        self.method = method
        self.data = data
        prefix = f"{method}: " if method else ""
        super().__init__(f"{prefix}RPC error [{rpc_code}]: {message}")


class PoolNotFoundError(RemoteRPCError):
    """Raised when the configured stake pool object does not exist on chain."""

    def __init__(self, pool_id: str, message: str = "stake pool not found"):
        self.pool_id = pool_id
        super().__init__(-32602, f"{message}: {pool_id}", method="sui_getObject")


class CoinSelectionError(JollfiError):
    """Base class for coin selection failures."""
    pass


class InsufficientCoinsError(CoinSelectionError):
    """Raised when not enough coins individually cover the required amount."""
    code = ErrorCode.INSUFFICIENT_COINS

    def __init__(self, needed: int, found: int, min_amount: int):
        self.needed = needed
        self.found = found
        self.min_amount = min_amount
        super().__init__(
            f"insufficient coins: need {needed} coins with {min_amount} balance each, found {found}"
        )


class NoGasCoinAvailableError(CoinSelectionError):
    """Raised when every available coin is excluded from gas selection."""
    code = ErrorCode.NO_GAS_COIN


class TransactionFailedError(JollfiError):
    """
    Raised when the chain accepted a transaction but its effects report failure.

    ``status`` holds the chain's verdict verbatim so callers can tell a
    consumed coin (racing request) apart from other causes.
    """
    code = ErrorCode.TRANSACTION_FAILED

    def __init__(self, status: str, digest: Optional[str] = None, error: Optional[str] = None):
        self.status = status
        self.digest = digest
        self.error = error
        detail = f" ({error})" if error else ""
        super().__init__(f"transaction failed with status: {status}{detail}")


class StorageError(JollfiError):
    """Raised by document stores when a read or write fails."""
    code = ErrorCode.STORAGE_ERROR
