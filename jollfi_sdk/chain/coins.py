"""
Coin selection for gas and payments.

Coins are listed fresh for every selection: a snapshot is only valid for
the instant it was fetched, and nothing here locks coins across
operations. Balances are never pooled or split; each selected payment coin
must cover the required amount on its own.
"""
import logging
from typing import AbstractSet, Iterable, List, Optional

from pydantic import ValidationError

from ..exceptions import InsufficientCoinsError, InvalidRequestError, NoGasCoinAvailableError, TransportError
from ..models import DEFAULT_COIN_TYPE, Coin, CoinPage
from .transport import RpcTransport

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50


class CoinSelector:
    """
    Selects spendable coins of one currency owned by a single address.
    """

    def __init__(
        self,
        transport: RpcTransport,
        owner: str,
        coin_type: str = DEFAULT_COIN_TYPE,
        page_size: int = DEFAULT_PAGE_SIZE,
        logger: Optional[logging.Logger] = None,
    ):
        self.transport = transport
        self.owner = owner
        self.coin_type = coin_type
        self.page_size = page_size
        self.logger = logger or logging.getLogger(__name__)

    def get_page(self, cursor: Optional[str] = None, limit: Optional[int] = None) -> CoinPage:
        """
        Fetch one page of coins.

        Raises:
            TransportError: If the node response cannot be decoded
        """
        result = self.transport.call(
            "suix_getCoins",
            [self.owner, self.coin_type, cursor, limit or self.page_size],
        )
        try:
            return CoinPage.model_validate(result)
        except ValidationError as e:
            raise TransportError(f"failed to parse coins response: {e}") from e

    def list_coins(self) -> List[Coin]:
        """
        Fetch every coin of the configured type, following pagination cursors.

        Returns:
            Coins in node order, without duplicate ids
        """
        coins: List[Coin] = []
        seen = set()
        cursor: Optional[str] = None

        while True:
            page = self.get_page(cursor)
            for coin in page.data:
                if coin.object_id in seen:
                    continue
                seen.add(coin.object_id)
                coins.append(coin)

            if not page.has_next_page or not page.next_cursor or page.next_cursor == cursor:
                break
            cursor = page.next_cursor

        self.logger.debug("Listed %d %s coins for %s", len(coins), self.coin_type, self.owner)
        return coins

    def select_gas_coin(self, excluding: Iterable[str] = ()) -> str:
        """
        Pick the first coin not in ``excluding``.

        Raises:
            NoGasCoinAvailableError: If every coin is excluded or none exist
        """
        excluded: AbstractSet[str] = frozenset(excluding)
        for coin in self.list_coins():
            if coin.object_id not in excluded:
                return coin.object_id
        raise NoGasCoinAvailableError(
            f"no gas coin available (excluding {len(excluded)} coin(s))"
        )

    def select_payment_coins(
        self,
        min_amount: int,
        count: int,
        excluding: Iterable[str] = (),
    ) -> List[str]:
        """
        Greedily collect ``count`` coins whose individual balance is at least
        ``min_amount``.

        Args:
            min_amount: Balance each coin must cover by itself
            count: Number of coins to collect
            excluding: Coin ids that must not be selected (e.g. the gas coin)

        Returns:
            Distinct coin ids in node order

        Raises:
            InvalidRequestError: If count is less than one
            InsufficientCoinsError: If the scan ends with fewer than count coins
        """
        if count < 1:
            raise InvalidRequestError("coin count must be at least 1")

        excluded = frozenset(excluding)
        selected: List[str] = []
        for coin in self.list_coins():
            if coin.object_id in excluded or coin.object_id in selected:
                continue
            if coin.balance >= min_amount:
                selected.append(coin.object_id)
                if len(selected) >= count:
                    return selected

        raise InsufficientCoinsError(needed=count, found=len(selected), min_amount=min_amount)

    def total_balance(self) -> int:
        """Sum of the balances of every listed coin"""
        return sum(coin.balance for coin in self.list_coins())
