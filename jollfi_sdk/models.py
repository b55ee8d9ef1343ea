"""
Data models for the Jollfi SDK.
"""
import logging
import time
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import ErrorCode
from .utils import is_u64, parse_u64, to_u64_string

logger = logging.getLogger(__name__)

DEFAULT_COIN_TYPE = "0x2::sui::SUI"


def _now() -> int:
    return int(time.time())


def _normalize_package(package_id: str) -> str:
    value = package_id.lower()
    if value.startswith("0x"):
        value = value[2:]
    return value.lstrip("0")


def event_type_matches(actual: str, expected: str) -> bool:
    """
    Compare two ``package::module::Name`` event types.

    Generic parameters on the actual type are ignored and package ids are
    compared without their ``0x`` prefix and leading zeros, since nodes may
    return either the short or the padded form.
    """
    if actual == expected:
        return True
    actual_parts = actual.split("<", 1)[0].split("::")
    expected_parts = expected.split("<", 1)[0].split("::")
    if len(actual_parts) != 3 or len(expected_parts) != 3:
        return False
    return (
        actual_parts[1:] == expected_parts[1:]
        and _normalize_package(actual_parts[0]) == _normalize_package(expected_parts[0])
    )


# ---------------------------------------------------------------------------
# Chain-side value objects
# ---------------------------------------------------------------------------

class Coin(BaseModel):
    """Snapshot of a spendable coin object owned by the signer"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    object_id: str = Field(..., alias="coinObjectId")
    balance: int
    coin_type: Optional[str] = Field(None, alias="coinType")
    version: Optional[Union[int, str]] = None
    digest: Optional[str] = None

    @field_validator("balance", mode="before")
    @classmethod
    def _parse_balance(cls, value: Any) -> int:
        return parse_u64(value)


class CoinPage(BaseModel):
    """One page of ``suix_getCoins``"""
    model_config = ConfigDict(populate_by_name=True)

    data: List[Coin] = Field(default_factory=list)
    next_cursor: Optional[str] = Field(None, alias="nextCursor")
    has_next_page: bool = Field(False, alias="hasNextPage")


class Balance(BaseModel):
    """Result of ``suix_getBalance``"""
    model_config = ConfigDict(populate_by_name=True)

    coin_type: str = Field(..., alias="coinType")
    coin_object_count: int = Field(0, alias="coinObjectCount")
    total_balance: int = Field(..., alias="totalBalance")

    @field_validator("total_balance", mode="before")
    @classmethod
    def _parse_total(cls, value: Any) -> int:
        return parse_u64(value)


class ObjectArg(BaseModel):
    """Move call argument referencing an on-chain object"""
    model_config = ConfigDict(frozen=True)

    kind: Literal["object"] = "object"
    object_id: str

    def to_rpc(self) -> str:
        return self.object_id


class AddressArg(BaseModel):
    """Move call argument of type ``address``"""
    model_config = ConfigDict(frozen=True)

    kind: Literal["address"] = "address"
    address: str

    def to_rpc(self) -> str:
        return self.address


class U64Arg(BaseModel):
    """Move call argument of type ``u64``, sent as a decimal string"""
    model_config = ConfigDict(frozen=True)

    kind: Literal["u64"] = "u64"
    value: int

    @field_validator("value")
    @classmethod
    def _check_range(cls, value: int) -> int:
        if not is_u64(value):
            raise ValueError("u64 argument out of range")
        return value

    def to_rpc(self) -> str:
        return to_u64_string(self.value)


class StringArg(BaseModel):
    """Move call argument passed through as a plain string"""
    model_config = ConfigDict(frozen=True)

    kind: Literal["string"] = "string"
    value: str

    def to_rpc(self) -> str:
        return self.value


MoveCallArg = Annotated[
    Union[ObjectArg, AddressArg, U64Arg, StringArg],
    Field(discriminator="kind"),
]


class CallDescriptor(BaseModel):
    """
    Description of a single Move call, as accepted by ``unsafe_moveCall``.

    Instances are immutable; derive variants with :meth:`with_gas_budget`.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    signer: str
    package_object_id: str = Field(..., alias="packageObjectId")
    module: str
    function: str
    type_arguments: Tuple[str, ...] = Field((), alias="typeArguments")
    arguments: Tuple[MoveCallArg, ...] = ()
    gas: Optional[str] = None
    gas_budget: Optional[str] = Field(None, alias="gasBudget")

    @field_validator("gas_budget")
    @classmethod
    def _check_budget(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.isdigit():
            raise ValueError(f"gas budget must be a decimal string, got {value!r}")
        return value

    def event_type(self, event_name: str) -> str:
        """Fully-qualified event type emitted by this call's module"""
        return f"{self.package_object_id}::{self.module}::{event_name}"

    def with_gas_budget(self, gas_budget: str) -> "CallDescriptor":
        return self.model_copy(update={"gas_budget": gas_budget})

    def rpc_arguments(self) -> List[str]:
        return [arg.to_rpc() for arg in self.arguments]

    def to_rpc(self) -> Dict[str, Any]:
        """Render the parameter object for ``unsafe_moveCall``"""
        params: Dict[str, Any] = {
            "signer": self.signer,
            "packageObjectId": self.package_object_id,
            "module": self.module,
            "function": self.function,
            "typeArguments": list(self.type_arguments),
            "arguments": self.rpc_arguments(),
            "gasBudget": self.gas_budget,
        }
        if self.gas:
            params["gas"] = self.gas
        return params


class TransactionBytes(BaseModel):
    """Result of ``unsafe_moveCall``"""
    model_config = ConfigDict(populate_by_name=True)

    tx_bytes: str = Field(..., alias="txBytes")
    gas: Optional[List[Dict[str, Any]]] = None
    input_objects: Optional[List[Any]] = Field(None, alias="inputObjects")


class GasEstimate(BaseModel):
    """Gas summary from effects or a dry run"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    computation_cost: int = Field(0, alias="computationCost")
    storage_cost: int = Field(0, alias="storageCost")
    storage_rebate: int = Field(0, alias="storageRebate")

    @field_validator("computation_cost", "storage_cost", "storage_rebate", mode="before")
    @classmethod
    def _parse_cost(cls, value: Any) -> int:
        return parse_u64(value)

    @property
    def total(self) -> int:
        return self.computation_cost + self.storage_cost - self.storage_rebate


class SuiEvent(BaseModel):
    """Event emitted during execution"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    type: str
    parsed_json: Any = Field(None, alias="parsedJson")
    sender: Optional[str] = None
    transaction_module: Optional[str] = Field(None, alias="transactionModule")


class EffectsStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


class TransactionResult(BaseModel):
    """
    Outcome of a submitted transaction.

    ``effects_status`` keeps the chain's status string verbatim; it is None
    when the node did not report effects.
    """
    model_config = ConfigDict(frozen=True)

    digest: str
    effects_status: Optional[str] = None
    error: Optional[str] = None
    events: Tuple[SuiEvent, ...] = ()
    gas_used: Optional[GasEstimate] = None

    @property
    def succeeded(self) -> bool:
        return self.effects_status is None or self.effects_status == EffectsStatus.SUCCESS.value

    def find_event(self, event_type: str) -> Optional[SuiEvent]:
        for event in self.events:
            if event_type_matches(event.type, event_type):
                return event
        return None

    @classmethod
    def from_rpc(cls, result: Dict[str, Any]) -> "TransactionResult":
        """
        Build a result from a ``sui_executeTransactionBlock`` or
        ``sui_getTransactionBlock`` response.

        Only the digest and effects status decide the outcome. Events and
        gas figures are informational: malformed entries are logged and
        dropped rather than failing an already executed transaction.
        """
        digest = result.get("digest") or ""
        effects = result.get("effects")
        status = error = None
        if isinstance(effects, dict):
            status_obj = effects.get("status")
            if isinstance(status_obj, dict):
                status = status_obj.get("status")
                error = status_obj.get("error")
            elif status_obj is not None:
                status = status_obj
        if status is not None and not isinstance(status, str):
            status = str(status)
        if error is not None and not isinstance(error, str):
            error = str(error)

        return cls(
            digest=digest,
            effects_status=status,
            error=error,
            events=_parse_events(result.get("events"), digest),
            gas_used=_parse_gas_used(effects, digest),
        )


def _parse_events(raw_events: Any, digest: Any) -> Tuple[SuiEvent, ...]:
    if not isinstance(raw_events, list):
        if raw_events:
            logger.warning("Ignoring events of %s: expected a list, got %s", digest, type(raw_events).__name__)
        return ()
    events = []
    for raw in raw_events:
        try:
            events.append(SuiEvent.model_validate(raw))
        except ValidationError as e:
            logger.warning("Skipping malformed event in %s: %s", digest, e)
    return tuple(events)


def _parse_gas_used(effects: Any, digest: Any) -> Optional[GasEstimate]:
    if not isinstance(effects, dict) or effects.get("gasUsed") is None:
        return None
    try:
        return GasEstimate.model_validate(effects["gasUsed"])
    except ValidationError as e:
        logger.debug("Unparseable gasUsed in %s: %s", digest, e)
        return None


# ---------------------------------------------------------------------------
# Local mirror records
# ---------------------------------------------------------------------------

class StakeRecord(BaseModel):
    """Mirror of a successful stake transaction"""
    requester_coin_id: str
    accepter_coin_id: str
    requester_address: str
    accepter_address: str
    stake_amount: int
    status: str = "completed"
    timestamp: int = Field(default_factory=_now)
    transaction_digest: str


class PayoutRecord(BaseModel):
    """
    Mirror of a successful pay-winner transaction.

    Winner, prize and fees are decided by the on-chain function and are
    deliberately not stored here.
    """
    requester_address: str
    accepter_address: str
    requester_score: int
    accepter_score: int
    stake_amount: int
    status: str = "completed"
    timestamp: int = Field(default_factory=_now)
    transaction_digest: str


# ---------------------------------------------------------------------------
# Inbound requests and responses
# ---------------------------------------------------------------------------

class StakeRequest(BaseModel):
    requester_coin_id: str = ""
    accepter_coin_id: str = ""
    requester_address: str = ""
    accepter_address: str = ""
    stake_amount: int = 0


class PayWinnerRequest(BaseModel):
    requester_address: str = ""
    accepter_address: str = ""
    requester_score: int = 0
    accepter_score: int = 0
    stake_amount: int = 0


class OperationResponse(BaseModel):
    """Common shape of stake and pay-winner responses"""
    success: bool
    transaction_digest: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[ErrorCode] = None


class StakeResponse(OperationResponse):
    pass


class PayWinnerResponse(OperationResponse):
    pass


class StakeHistoryResponse(BaseModel):
    success: bool
    stakes: List[StakeRecord] = Field(default_factory=list)
    count: int = 0
    error: Optional[str] = None
    error_code: Optional[ErrorCode] = None


class GameHistoryResponse(BaseModel):
    success: bool
    games: List[PayoutRecord] = Field(default_factory=list)
    count: int = 0
    error: Optional[str] = None
    error_code: Optional[ErrorCode] = None
