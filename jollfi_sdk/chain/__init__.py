"""
Sui chain layer: transport, signing, coin selection and transaction execution.
"""
from .builder import TransactionBuilder
from .client import SuiGameClient
from .coins import CoinSelector
from .executor import ExecutionStage, TransactionExecutor
from .signer import Ed25519Signer, Signer, verify_signature
from .transport import HttpRpcTransport, RpcTransport, get_transport

__all__ = [
    "CoinSelector",
    "Ed25519Signer",
    "ExecutionStage",
    "HttpRpcTransport",
    "RpcTransport",
    "Signer",
    "SuiGameClient",
    "TransactionBuilder",
    "TransactionExecutor",
    "get_transport",
    "verify_signature",
]
