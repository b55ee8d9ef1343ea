"""
Chain client for the Jollfi game contract.

:class:`SuiGameClient` turns game intents (stake, pay the winner) into
signed Move calls against the configured package, and exposes a few read
helpers used by health checks and tooling.
"""
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from ..config import Settings
from ..exceptions import (
    ConfigurationError, InvalidPayWinnerRequestError, InvalidStakeRequestError,
    PoolNotFoundError, TransportError,
)
from ..models import (
    DEFAULT_COIN_TYPE, AddressArg, Balance, CallDescriptor, Coin, GasEstimate,
    ObjectArg, TransactionResult, U64Arg,
)
from ..utils import is_u64, redact
from .builder import DEFAULT_GAS_BUDGET, TransactionBuilder
from .coins import CoinSelector
from .executor import TransactionExecutor
from .signer import Ed25519Signer, Signer
from .transport import RpcTransport, get_transport

logger = logging.getLogger(__name__)

STAKE_FUNCTION = "external_stake"
PAY_WINNER_FUNCTION = "external_pay_winner"
STAKED_EVENT = "ExternalGameStaked"
COMPLETED_EVENT = "ExternalGameCompleted"
SELECTED_COINS_GAS_BUDGET = "20000000"  # 0.02 SUI


class SuiGameClient:
    """
    Client for staking and payouts through the game's Move module.

    Every operation selects coins fresh, builds, signs and submits exactly
    one transaction. Nothing is retried.
    """

    def __init__(
        self,
        transport: RpcTransport,
        signer: Signer,
        package_id: str,
        module_name: str,
        pool_id: str,
        coin_type: str = DEFAULT_COIN_TYPE,
        gas_budget: str = DEFAULT_GAS_BUDGET,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the chain client.

        Args:
            transport: JSON-RPC transport to the node
            signer: Signer whose address owns the coins and pays gas
            package_id: Published package holding the game module
            module_name: Game module name
            pool_id: Shared stake pool object
            coin_type: Currency staked and used for gas
            gas_budget: Baseline gas budget as a decimal string
            logger: Optional logger instance

        Raises:
            ConfigurationError: If package, module or pool is missing
        """
        if not package_id or not module_name or not pool_id:
            raise ConfigurationError("package_id, module_name and pool_id are required")

        self.transport = transport
        self.signer = signer
        self.package_id = package_id
        self.module_name = module_name
        self.pool_id = pool_id
        self.coin_type = coin_type
        self.gas_budget = gas_budget
        self.logger = logger or logging.getLogger(__name__)

        self.coins = CoinSelector(transport, signer.address, coin_type, logger=self.logger)
        self.builder = TransactionBuilder(transport, gas_budget, logger=self.logger)
        self.executor = TransactionExecutor(transport, signer, self.builder, logger=self.logger)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[RpcTransport] = None,
        logger: Optional[logging.Logger] = None,
    ) -> "SuiGameClient":
        """
        Create a client from loaded settings.

        Raises:
            ConfigurationError: If required settings are missing, the key
                is malformed or the node URL is not allowed
        """
        settings.validate_required()
        signer = Ed25519Signer(settings.private_key)
        if transport is None:
            try:
                transport = get_transport(settings.rpc_url, timeout=settings.request_timeout)
            except ValueError as e:
                raise ConfigurationError(f"invalid SUI_NETWORK_URL: {e}") from e
        return cls(
            transport,
            signer,
            package_id=settings.package_id,
            module_name=settings.module_name,
            pool_id=settings.pool_id,
            coin_type=settings.coin_type,
            gas_budget=settings.gas_budget,
            logger=logger,
        )

    @property
    def address(self) -> str:
        return self.signer.address

    # ------------------------------------------------------------------
    # Descriptors
    # ------------------------------------------------------------------

    def build_stake_descriptor(
        self,
        requester_coin_id: str,
        accepter_coin_id: str,
        amount: int,
        gas: Optional[str] = None,
        gas_budget: Optional[str] = None,
    ) -> CallDescriptor:
        """Describe an ``external_stake`` call; no validation or network access"""
        return CallDescriptor(
            signer=self.address,
            package_object_id=self.package_id,
            module=self.module_name,
            function=STAKE_FUNCTION,
            type_arguments=(self.coin_type,),
            arguments=(
                ObjectArg(object_id=self.pool_id),
                ObjectArg(object_id=requester_coin_id),
                ObjectArg(object_id=accepter_coin_id),
                U64Arg(value=amount),
            ),
            gas=gas,
            gas_budget=gas_budget or self.gas_budget,
        )

    def build_pay_winner_descriptor(
        self,
        requester_address: str,
        accepter_address: str,
        requester_score: int,
        accepter_score: int,
        stake_amount: int,
        gas: Optional[str] = None,
    ) -> CallDescriptor:
        """Describe an ``external_pay_winner`` call; no validation or network access"""
        return CallDescriptor(
            signer=self.address,
            package_object_id=self.package_id,
            module=self.module_name,
            function=PAY_WINNER_FUNCTION,
            type_arguments=(),
            arguments=(
                ObjectArg(object_id=self.pool_id),
                AddressArg(address=requester_address),
                AddressArg(address=accepter_address),
                U64Arg(value=requester_score),
                U64Arg(value=accepter_score),
                U64Arg(value=stake_amount),
            ),
            gas=gas,
            gas_budget=self.gas_budget,
        )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def external_stake(self, requester_coin_id: str, accepter_coin_id: str, amount: int) -> str:
        """
        Stake two players' coins into the pool.

        Args:
            requester_coin_id: Coin paying the requester's stake
            accepter_coin_id: Coin paying the accepter's stake
            amount: Stake per player, in the coin's smallest unit

        Returns:
            Transaction digest

        Raises:
            InvalidStakeRequestError: If coin ids are missing or equal, or the
                amount is not in (0, 2**64)
            NoGasCoinAvailableError: If no coin other than the payment coins exists
            TransactionFailedError: If the chain rejects the stake
            TransportError: On network failures
            RemoteRPCError: If the node returns an error
        """
        self._validate_stake(requester_coin_id, accepter_coin_id, amount)

        gas = self.coins.select_gas_coin(excluding=(requester_coin_id, accepter_coin_id))
        descriptor = self.build_stake_descriptor(requester_coin_id, accepter_coin_id, amount, gas=gas)

        self.logger.info(
            f"Staking {amount} from coins {redact(requester_coin_id)} and "
            f"{redact(accepter_coin_id)} (gas {redact(gas)})"
        )
        result = self.executor.execute(descriptor, STAKED_EVENT)
        self.logger.info(f"Stake executed successfully: {result.digest}")
        return result.digest

    def external_pay_winner(
        self,
        requester_address: str,
        accepter_address: str,
        requester_score: int,
        accepter_score: int,
        stake_amount: int,
    ) -> str:
        """
        Settle a finished game from the pool.

        Winner, prize and fees are computed by the Move function; this client
        only forwards the scores.

        Returns:
            Transaction digest

        Raises:
            InvalidPayWinnerRequestError: If an address is missing, the stake
                amount is not positive or a score is not a u64
            NoGasCoinAvailableError: If the signer owns no coins
            TransactionFailedError: If the chain rejects the payout
        """
        if not requester_address or not accepter_address:
            raise InvalidPayWinnerRequestError("requester and accepter addresses are required")
        if not is_u64(stake_amount) or stake_amount == 0:
            raise InvalidPayWinnerRequestError(f"stake amount must be a positive u64, got {stake_amount!r}")
        for name, score in (("requester_score", requester_score), ("accepter_score", accepter_score)):
            if not is_u64(score):
                raise InvalidPayWinnerRequestError(f"{name} must be a non-negative u64, got {score!r}")

        # The pool pays out, so no caller coin needs excluding from gas
        gas = self.coins.select_gas_coin()
        descriptor = self.build_pay_winner_descriptor(
            requester_address, accepter_address, requester_score, accepter_score, stake_amount, gas=gas
        )

        self.logger.info(
            f"Paying winner of {redact(requester_address)} ({requester_score}) vs "
            f"{redact(accepter_address)} ({accepter_score}), stake {stake_amount}"
        )
        result = self.executor.execute(descriptor, COMPLETED_EVENT)
        self.logger.info(f"Pay winner executed successfully: {result.digest}")
        return result.digest

    def stake_with_selected_coins(self, amount: int) -> str:
        """
        Stake using two of the signer's own coins, each covering ``amount``.

        Raises:
            InvalidStakeRequestError: If amount is not in (0, 2**64)
            InsufficientCoinsError: If fewer than two coins cover the amount
            NoGasCoinAvailableError: If no third coin is left for gas
        """
        if not is_u64(amount) or amount == 0:
            raise InvalidStakeRequestError(f"stake amount must be a positive u64, got {amount!r}")

        requester_coin, accepter_coin = self.coins.select_payment_coins(amount, 2)
        gas = self.coins.select_gas_coin(excluding=(requester_coin, accepter_coin))
        descriptor = self.build_stake_descriptor(
            requester_coin, accepter_coin, amount, gas=gas, gas_budget=SELECTED_COINS_GAS_BUDGET
        )
        result = self.executor.execute(descriptor, STAKED_EVENT)
        self.logger.info(f"Stake with selected coins executed successfully: {result.digest}")
        return result.digest

    @staticmethod
    def _validate_stake(requester_coin_id: str, accepter_coin_id: str, amount: int) -> None:
        if not requester_coin_id or not accepter_coin_id:
            raise InvalidStakeRequestError("requester and accepter coin ids are required")
        if requester_coin_id == accepter_coin_id:
            raise InvalidStakeRequestError("requester and accepter coin ids must differ")
        if not is_u64(amount) or amount == 0:
            raise InvalidStakeRequestError(f"stake amount must be a positive u64, got {amount!r}")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_balance(self) -> Balance:
        """Total balance of the signer in the configured coin type"""
        result = self.transport.call("suix_getBalance", [self.address, self.coin_type])
        try:
            return Balance.model_validate(result)
        except ValidationError as e:
            raise TransportError(f"failed to parse balance response: {e}") from e

    def get_coins(self) -> List[Coin]:
        return self.coins.list_coins()

    def get_stake_pool(self) -> Dict[str, Any]:
        """
        Fetch the stake pool object.

        Raises:
            PoolNotFoundError: If the node does not know the pool object
        """
        result = self.transport.call(
            "sui_getObject",
            [self.pool_id, {"showType": True, "showContent": True, "showOwner": True}],
        )
        if not isinstance(result, dict) or result.get("error") or not result.get("data"):
            raise PoolNotFoundError(self.pool_id)
        return result["data"]

    def validate_pool_config(self) -> None:
        """
        Check that the configured pool exists.

        Raises:
            PoolNotFoundError: If it does not
        """
        pool = self.get_stake_pool()
        self.logger.info(f"Stake pool {redact(self.pool_id)} found: {pool.get('type')}")

    def get_transaction(self, digest: str) -> TransactionResult:
        return self.executor.get_transaction(digest)

    def wait_for_transaction(
        self, digest: str, timeout: float = 30.0, poll_interval: float = 2.0
    ) -> TransactionResult:
        return self.executor.wait_for_transaction(digest, timeout=timeout, poll_interval=poll_interval)

    def estimate_gas(self, descriptor: CallDescriptor) -> GasEstimate:
        """Build a call and dry-run it without signing"""
        return self.builder.dry_run(self.builder.build(descriptor))

    def health_check(self) -> int:
        """
        Probe the node.

        Returns:
            Current epoch

        Raises:
            TransportError: If the node is unreachable or the answer malformed
        """
        result = self.transport.call("suix_getCurrentEpoch", [])
        try:
            return int(result["epoch"])
        except (KeyError, TypeError, ValueError) as e:
            raise TransportError(f"failed to parse epoch response: {e}") from e

    def close(self) -> None:
        self.transport.close()
