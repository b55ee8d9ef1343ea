"""
Jollfi SDK: staking and payouts for two-player games on Sui.
"""
from .version import __version__

from .chain import (
    CoinSelector, Ed25519Signer, HttpRpcTransport, RpcTransport, SuiGameClient,
    TransactionBuilder, TransactionExecutor, get_transport,
)
from .config import Settings, configure_logging, load_settings
from .exceptions import (
    ConfigurationError, ErrorCode, InsufficientCoinsError, InvalidPayWinnerRequestError,
    InvalidRequestError, InvalidStakeRequestError, JollfiError, NoGasCoinAvailableError,
    PoolNotFoundError, RemoteRPCError, StorageError, TransactionFailedError,
    TransportError, TransportTimeoutError,
)
from .models import (
    CallDescriptor, GameHistoryResponse, PayoutRecord, PayWinnerRequest, PayWinnerResponse,
    StakeHistoryResponse, StakeRecord, StakeRequest, StakeResponse, TransactionResult,
)
from .service import GameService, build_game_service
from .storage import DocumentStore, InMemoryDocumentStore

__all__ = [
    "__version__",
    "CallDescriptor",
    "CoinSelector",
    "ConfigurationError",
    "DocumentStore",
    "Ed25519Signer",
    "ErrorCode",
    "GameHistoryResponse",
    "GameService",
    "HttpRpcTransport",
    "InMemoryDocumentStore",
    "InsufficientCoinsError",
    "InvalidPayWinnerRequestError",
    "InvalidRequestError",
    "InvalidStakeRequestError",
    "JollfiError",
    "NoGasCoinAvailableError",
    "PayWinnerRequest",
    "PayWinnerResponse",
    "PayoutRecord",
    "PoolNotFoundError",
    "RemoteRPCError",
    "RpcTransport",
    "Settings",
    "StakeHistoryResponse",
    "StakeRecord",
    "StakeRequest",
    "StakeResponse",
    "StorageError",
    "SuiGameClient",
    "TransactionBuilder",
    "TransactionExecutor",
    "TransactionFailedError",
    "TransactionResult",
    "TransportError",
    "TransportTimeoutError",
    "build_game_service",
    "configure_logging",
    "get_transport",
    "load_settings",
]
