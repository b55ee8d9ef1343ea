"""
Builds unsigned transaction bytes for Move calls.
"""
import base64
import binascii
import logging
from typing import Optional

from pydantic import ValidationError

from ..exceptions import InvalidParametersError, TransportError
from ..models import CallDescriptor, GasEstimate, TransactionBytes
from ..utils import b64encode
from .transport import RpcTransport

logger = logging.getLogger(__name__)

DEFAULT_GAS_BUDGET = "10000000"  # 0.01 SUI


class TransactionBuilder:
    """
    Turns a :class:`CallDescriptor` into unsigned transaction bytes via the
    node's ``unsafe_moveCall`` method.
    """

    def __init__(
        self,
        transport: RpcTransport,
        default_gas_budget: str = DEFAULT_GAS_BUDGET,
        logger: Optional[logging.Logger] = None,
    ):
        self.transport = transport
        self.default_gas_budget = default_gas_budget
        self.logger = logger or logging.getLogger(__name__)

    def build(self, descriptor: Optional[CallDescriptor]) -> bytes:
        """
        Build unsigned transaction bytes.

        Args:
            descriptor: The Move call to build

        Returns:
            Raw (base64-decoded) transaction bytes

        Raises:
            InvalidParametersError: If no descriptor is given
            TransportError: If the node response cannot be decoded
            RemoteRPCError: If the node rejects the call
        """
        if not descriptor:
            raise InvalidParametersError("transaction parameters are required")

        if descriptor.gas_budget is None:
            descriptor = descriptor.with_gas_budget(self.default_gas_budget)

        self.logger.debug(
            "Building %s::%s with gas budget %s",
            descriptor.module, descriptor.function, descriptor.gas_budget,
        )
        result = self.transport.call("unsafe_moveCall", [descriptor.to_rpc()])

        try:
            built = TransactionBytes.model_validate(result)
        except ValidationError as e:
            raise TransportError(f"failed to parse transaction bytes: {e}") from e

        try:
            return base64.b64decode(built.tx_bytes, validate=True)
        except (binascii.Error, ValueError) as e:
            raise TransportError(f"failed to decode transaction bytes: {e}") from e

    def dry_run(self, tx_bytes: bytes) -> GasEstimate:
        """
        Estimate gas for already-built bytes with ``sui_dryRunTransactionBlock``.

        Raises:
            TransportError: If the response lacks gas information
        """
        result = self.transport.call("sui_dryRunTransactionBlock", [b64encode(tx_bytes)])
        try:
            return GasEstimate.model_validate(result["effects"]["gasUsed"])
        except (KeyError, TypeError, ValidationError) as e:
            raise TransportError(f"failed to parse gas estimation: {e}") from e
