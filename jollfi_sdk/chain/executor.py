"""
Signs, submits and interprets transactions.

A single execution moves through Built -> Signed -> Submitted and ends in
Succeeded or Failed. Nothing is retried here and failed bytes are never
resubmitted.
"""
import logging
import time
from enum import Enum
from typing import Any, Optional

from pydantic import ValidationError

from ..exceptions import (
    InvalidRequestError, RemoteRPCError, TransactionFailedError,
    TransportError, TransportTimeoutError,
)
from ..models import CallDescriptor, TransactionResult
from ..utils import b64encode, is_valid_digest
from ._rate_limited_log import rate_limited_log
from .builder import TransactionBuilder
from .signer import Signer
from .transport import RpcTransport

logger = logging.getLogger(__name__)

EXECUTE_OPTIONS = {"showEffects": True, "showEvents": True}
LOOKUP_OPTIONS = {
    "showInput": True,
    "showRawInput": False,
    "showEffects": True,
    "showEvents": True,
    "showObjectChanges": True,
}


class ExecutionStage(str, Enum):
    BUILT = "built"
    SIGNED = "signed"
    SUBMITTED = "submitted"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class TransactionExecutor:
    """
    Executes Move calls for one signer.
    """

    def __init__(
        self,
        transport: RpcTransport,
        signer: Signer,
        builder: TransactionBuilder,
        logger: Optional[logging.Logger] = None,
    ):
        self.transport = transport
        self.signer = signer
        self.builder = builder
        self.logger = logger or logging.getLogger(__name__)

    def _stage(self, stage: ExecutionStage, detail: str = "") -> None:
        self.logger.debug("Transaction %s %s", stage.value, detail)

    def execute(self, descriptor: CallDescriptor, expected_event_name: str) -> TransactionResult:
        """
        Build, sign and submit a Move call, then check its effects.

        Args:
            descriptor: The Move call
            expected_event_name: Event the call should emit (informational)

        Returns:
            The transaction result; its digest identifies the on-chain outcome

        Raises:
            InvalidParametersError: If descriptor is missing
            TransactionFailedError: If effects report a status other than success
            TransportError: On network or decoding failures
            RemoteRPCError: If the node rejects build or submission
        """
        tx_bytes = self.builder.build(descriptor)
        self._stage(ExecutionStage.BUILT, f"{descriptor.function} ({len(tx_bytes)} bytes)")

        result = self.submit(tx_bytes)

        event_type = descriptor.event_type(expected_event_name)
        event = result.find_event(event_type)
        if event is None:
            rate_limited_log(
                f"Expected event {event_type} not found in transaction {result.digest}",
                level="warning",
                logger_instance=self.logger,
            )
        else:
            self.logger.info("Event emitted: %s %s", expected_event_name, event.parsed_json)

        return result

    def submit(self, tx_bytes: bytes) -> TransactionResult:
        """
        Sign and submit already-built transaction bytes.

        Raises:
            TransactionFailedError: If effects report a status other than success
            TransportError: On network or decoding failures
            RemoteRPCError: If the node rejects the submission
        """
        tx_b64 = b64encode(tx_bytes)
        signature = self.signer.sign(tx_bytes)
        self._stage(ExecutionStage.SIGNED)

        try:
            raw = self.transport.call(
                "sui_executeTransactionBlock",
                [tx_b64, [signature], dict(EXECUTE_OPTIONS)],
            )
        except (TransportError, RemoteRPCError) as e:
            self._stage(ExecutionStage.FAILED, str(e))
            raise
        self._stage(ExecutionStage.SUBMITTED)

        result = self._parse_result(raw, "execution")

        if not result.succeeded:
            self._stage(ExecutionStage.FAILED, f"{result.digest}: {result.effects_status}")
            self.logger.error(
                f"Transaction {result.digest} failed with status {result.effects_status}: {result.error}"
            )
            raise TransactionFailedError(result.effects_status, digest=result.digest, error=result.error)

        self._stage(ExecutionStage.SUCCEEDED, result.digest)
        self.logger.info(f"Transaction executed: {result.digest}")
        return result

    def get_transaction(self, digest: str) -> TransactionResult:
        """
        Look up a transaction by digest.

        Raises:
            InvalidRequestError: If the digest is not a base58 32-byte digest
        """
        if not is_valid_digest(digest):
            raise InvalidRequestError(f"invalid transaction digest: {digest!r}")
        raw = self.transport.call("sui_getTransactionBlock", [digest, dict(LOOKUP_OPTIONS)])
        return self._parse_result(raw, "transaction block")

    def wait_for_transaction(
        self,
        digest: str,
        timeout: float = 30.0,
        poll_interval: float = 2.0,
    ) -> TransactionResult:
        """
        Poll until the node knows the transaction.

        Raises:
            TransportTimeoutError: If the transaction is not found in time
        """
        deadline = time.monotonic() + timeout
        while True:
            try:
                return self.get_transaction(digest)
            except (RemoteRPCError, TransportError) as e:
                if time.monotonic() + poll_interval > deadline:
                    raise TransportTimeoutError(f"timeout waiting for transaction {digest}") from e
                self.logger.debug("Transaction %s not available yet: %s", digest, e)
            time.sleep(poll_interval)

    def _parse_result(self, raw: Any, what: str) -> TransactionResult:
        if not isinstance(raw, dict):
            raise TransportError(f"failed to parse {what} result: expected object, got {type(raw).__name__}")
        try:
            result = TransactionResult.from_rpc(raw)
        except ValidationError as e:
            raise TransportError(f"failed to parse {what} result: {e}") from e
        if not result.digest:
            raise TransportError(f"{what} result has no digest")
        return result
