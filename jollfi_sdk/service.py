"""
Game service: chain first, local mirror second.

Each write operation submits exactly one transaction and, only after the
chain reports success, records the action in the document store. The chain
is the source of truth: a failed mirror write is logged and never turns a
successful transaction into a failed response.
"""
import logging
from typing import Any, Dict, Optional, Protocol

from .chain.client import SuiGameClient
from .config import Settings, configure_logging
from .exceptions import ErrorCode, JollfiError, StorageError
from .models import (
    GameHistoryResponse, PayoutRecord, PayWinnerRequest, PayWinnerResponse,
    StakeHistoryResponse, StakeRecord, StakeRequest, StakeResponse,
)
from .storage import (
    DESCENDING, PAY_WINNERS_COLLECTION, STAKES_COLLECTION, USERS_COLLECTION,
    DocumentStore, get_document_store,
)
from .utils import is_u64

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 50


class ChainOperations(Protocol):
    """Chain operations the service depends on"""

    def external_stake(self, requester_coin_id: str, accepter_coin_id: str, amount: int) -> str:
        ...

    def external_pay_winner(
        self,
        requester_address: str,
        accepter_address: str,
        requester_score: int,
        accepter_score: int,
        stake_amount: int,
    ) -> str:
        ...

    def health_check(self) -> int:
        ...


def participant_query(address: str) -> Dict[str, Any]:
    """Filter matching records where ``address`` took either side"""
    return {"$or": [{"requester_address": address}, {"accepter_address": address}]}


class GameService:
    """
    Stake and payout orchestration with a local history mirror.
    """

    def __init__(
        self,
        chain: ChainOperations,
        store: DocumentStore,
        logger: Optional[logging.Logger] = None,
    ):
        self.chain = chain
        self.store = store
        self.logger = logger or logging.getLogger(__name__)

    def stake_game(self, request: StakeRequest) -> StakeResponse:
        """
        Stake both players' coins and record the stake.

        Args:
            request: Stake request

        Returns:
            Success with the transaction digest, or failure with an error code
        """
        problem = self._check_stake_request(request)
        if problem:
            return StakeResponse(success=False, error=problem, error_code=ErrorCode.INVALID_REQUEST)

        try:
            digest = self.chain.external_stake(
                request.requester_coin_id, request.accepter_coin_id, request.stake_amount
            )
        except JollfiError as e:
            self.logger.error(f"Stake failed: {e}")
            return StakeResponse(success=False, error=str(e), error_code=e.code)

        record = StakeRecord(
            requester_coin_id=request.requester_coin_id,
            accepter_coin_id=request.accepter_coin_id,
            requester_address=request.requester_address,
            accepter_address=request.accepter_address,
            stake_amount=request.stake_amount,
            transaction_digest=digest,
        )
        self._persist(STAKES_COLLECTION, record.model_dump(), digest)
        self._touch_users(record.timestamp, request.requester_address, request.accepter_address)

        return StakeResponse(
            success=True,
            transaction_digest=digest,
            message="Game stake processed successfully",
        )

    def pay_winner(self, request: PayWinnerRequest) -> PayWinnerResponse:
        """
        Settle a game on chain and record the payout.

        Returns:
            Success with the transaction digest, or failure with an error code
        """
        problem = self._check_pay_winner_request(request)
        if problem:
            return PayWinnerResponse(success=False, error=problem, error_code=ErrorCode.INVALID_REQUEST)

        try:
            digest = self.chain.external_pay_winner(
                request.requester_address,
                request.accepter_address,
                request.requester_score,
                request.accepter_score,
                request.stake_amount,
            )
        except JollfiError as e:
            self.logger.error(f"Pay winner failed: {e}")
            return PayWinnerResponse(success=False, error=str(e), error_code=e.code)

        record = PayoutRecord(
            requester_address=request.requester_address,
            accepter_address=request.accepter_address,
            requester_score=request.requester_score,
            accepter_score=request.accepter_score,
            stake_amount=request.stake_amount,
            transaction_digest=digest,
        )
        self._persist(PAY_WINNERS_COLLECTION, record.model_dump(), digest)
        self._touch_users(record.timestamp, request.requester_address, request.accepter_address)

        return PayWinnerResponse(
            success=True,
            transaction_digest=digest,
            message="Winner paid successfully",
        )

    def get_stake_history(self, address: str) -> StakeHistoryResponse:
        """Most recent stakes involving ``address``, newest first"""
        if not address:
            return StakeHistoryResponse(
                success=False, error="address is required", error_code=ErrorCode.INVALID_REQUEST
            )
        try:
            documents = self._history(STAKES_COLLECTION, address)
        except StorageError as e:
            self.logger.error(f"Failed to load stake history: {e}")
            return StakeHistoryResponse(success=False, error=str(e), error_code=e.code)

        stakes = [StakeRecord.model_validate(doc) for doc in documents]
        return StakeHistoryResponse(success=True, stakes=stakes, count=len(stakes))

    def get_game_history(self, address: str) -> GameHistoryResponse:
        """Most recent payouts involving ``address``, newest first"""
        if not address:
            return GameHistoryResponse(
                success=False, error="address is required", error_code=ErrorCode.INVALID_REQUEST
            )
        try:
            documents = self._history(PAY_WINNERS_COLLECTION, address)
        except StorageError as e:
            self.logger.error(f"Failed to load game history: {e}")
            return GameHistoryResponse(success=False, error=str(e), error_code=e.code)

        games = [PayoutRecord.model_validate(doc) for doc in documents]
        return GameHistoryResponse(success=True, games=games, count=len(games))

    def health(self) -> Dict[str, Any]:
        """
        Probe the chain and the store without raising.

        Returns:
            ``{"status": "ok"|"degraded", "chain": {...}, "storage": {...}}``
        """
        report: Dict[str, Any] = {}
        try:
            report["chain"] = {"status": "ok", "epoch": self.chain.health_check()}
        except JollfiError as e:
            self.logger.warning(f"Chain health check failed: {e}")
            report["chain"] = {"status": "error", "error": str(e)}

        try:
            reachable = self.store.ping()
        except StorageError as e:
            self.logger.warning(f"Storage health check failed: {e}")
            reachable = False
        report["storage"] = {"status": "ok" if reachable else "error"}

        healthy = report["chain"]["status"] == "ok" and reachable
        report["status"] = "ok" if healthy else "degraded"
        return report

    def close(self) -> None:
        self.store.close()
        close = getattr(self.chain, "close", None)
        if close is not None:
            close()

    def _history(self, collection: str, address: str):
        return self.store.find(
            collection,
            participant_query(address),
            sort=[("timestamp", DESCENDING)],
            limit=HISTORY_LIMIT,
        )

    def _persist(self, collection: str, document: Dict[str, Any], digest: str) -> None:
        try:
            self.store.insert_one(collection, document)
        except Exception as e:
            # The transaction already succeeded; the mirror is best effort
            self.logger.warning(f"Persistence warning: failed to save {collection} record for {digest}: {e}")

    def _touch_users(self, timestamp: int, *addresses: str) -> None:
        for address in addresses:
            if not address:
                continue
            try:
                self.store.update_one(
                    USERS_COLLECTION,
                    {"address": address},
                    {"$set": {"last_seen": timestamp}, "$setOnInsert": {"created_at": timestamp}},
                    upsert=True,
                )
            except Exception as e:
                self.logger.warning(f"Persistence warning: failed to update user {address}: {e}")

    @staticmethod
    def _check_stake_request(request: StakeRequest) -> Optional[str]:
        if not request.requester_coin_id or not request.accepter_coin_id:
            return "requester_coin_id and accepter_coin_id are required"
        if request.requester_coin_id == request.accepter_coin_id:
            return "requester_coin_id and accepter_coin_id must differ"
        if not request.requester_address or not request.accepter_address:
            return "requester_address and accepter_address are required"
        if not is_u64(request.stake_amount) or request.stake_amount == 0:
            return "stake_amount must be greater than 0"
        return None

    @staticmethod
    def _check_pay_winner_request(request: PayWinnerRequest) -> Optional[str]:
        if not request.requester_address or not request.accepter_address:
            return "requester_address and accepter_address are required"
        if not is_u64(request.stake_amount) or request.stake_amount == 0:
            return "stake_amount must be greater than 0"
        if not is_u64(request.requester_score) or not is_u64(request.accepter_score):
            return "scores must be non-negative"
        return None


def build_game_service(
    settings: Settings,
    store: Optional[DocumentStore] = None,
    logger: Optional[logging.Logger] = None,
) -> GameService:
    """
    Wire settings into a ready-to-use service and apply ``log_level``.

    Args:
        settings: Loaded settings
        store: Document store; defaults to MongoDB when ``mongo_uri`` is set,
            otherwise an in-memory store

    Raises:
        ConfigurationError: If required settings are missing or invalid
    """
    configure_logging(settings.log_level)
    client = SuiGameClient.from_settings(settings, logger=logger)
    if store is None:
        store = get_document_store(settings.mongo_uri, settings.mongo_database)
    (logger or logging.getLogger(__name__)).info(
        f"Game service ready for {client.address} on {settings.environment}"
    )
    return GameService(client, store, logger=logger)
