"""
In-process stub of the Sui JSON-RPC node.

This module simulates the handful of node methods the chain client uses so
the SDK can run without a network, for local development (``stub://``
URLs) and tests. Transactions are "built" as base64-encoded JSON of the Move
call and "executed" against an in-memory coin table.
"""
import base64
import binascii
import itertools
import json
import logging
import threading
import time
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from ..exceptions import RemoteRPCError, TransportError
from ..models import DEFAULT_COIN_TYPE
from ..utils import b64encode, digest_for
from .signer import verify_signature
from .transport import RpcTransport

logger = logging.getLogger(__name__)

# JSON-RPC error codes used by Sui full nodes
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INVALID_SIGNATURE = -32002

STUB_GAS_USED = {
    "computationCost": "1000000",
    "storageCost": "2000000",
    "storageRebate": "500000",
}


class StubTransport(RpcTransport):
    """
    A stub implementation of the node transport.

    Coins referenced as payment by an ``external_stake`` call are consumed on
    execution, so submitting a second stake with the same coin produces
    effects status ``failure`` just as a racing request would on chain.
    """

    def __init__(
        self,
        owner: Optional[str] = None,
        coins: Optional[Mapping[str, int]] = None,
        coin_type: str = DEFAULT_COIN_TYPE,
        objects: Optional[Mapping[str, str]] = None,
        epoch: int = 1,
        latency: float = 0.0,
    ):
        """
        Args:
            owner: Address whose coins are served; None serves every owner
            coins: Initial coins as ``{object_id: balance}``
            coin_type: Type of the initial coins
            objects: Extra on-chain objects as ``{object_id: type}``
                (e.g. stake pools); when given, Move calls whose first
                argument is not a known object fail
            epoch: Value returned by ``suix_getCurrentEpoch``
            latency: Seconds to sleep per call, to mimic a network
        """
        self.owner = owner
        self.epoch = epoch
        self.latency = latency
        self.closed = False
        self.calls: List[tuple] = []

        self._coins: Dict[str, Dict[str, Any]] = {}
        self._objects: Dict[str, str] = dict(objects or {})
        self._check_objects = objects is not None
        self._transactions: Dict[str, Dict[str, Any]] = {}
        self._nonce = itertools.count(1)
        self._lock = threading.RLock()

        for object_id, balance in (coins or {}).items():
            self.add_coin(object_id, balance, coin_type)

        self._handlers: Dict[str, Callable[[Sequence[Any]], Any]] = {
            "suix_getCoins": self._get_coins,
            "suix_getBalance": self._get_balance,
            "sui_getObject": self._get_object,
            "unsafe_moveCall": self._move_call,
            "sui_dryRunTransactionBlock": self._dry_run,
            "sui_executeTransactionBlock": self._execute,
            "sui_getTransactionBlock": self._get_transaction,
            "suix_getCurrentEpoch": self._current_epoch,
        }

    def add_coin(self, object_id: str, balance: int, coin_type: str = DEFAULT_COIN_TYPE) -> None:
        with self._lock:
            self._coins[object_id] = {
                "coinType": coin_type,
                "coinObjectId": object_id,
                "version": "1",
                "digest": digest_for(object_id.encode("utf-8")),
                "balance": str(balance),
            }

    def add_object(self, object_id: str, object_type: str) -> None:
        with self._lock:
            self._objects[object_id] = object_type
            self._check_objects = True

    @property
    def coin_ids(self) -> List[str]:
        with self._lock:
            return list(self._coins)

    def call(self, method: str, params: Sequence[Any]) -> Any:
        if self.closed:
            raise TransportError("stub transport is closed")

        handler = self._handlers.get(method)
        if handler is None:
            raise RemoteRPCError(METHOD_NOT_FOUND, f"Method not found: {method}", method=method)

        logger.debug(f"StubTransport.call {method}")
        if self.latency:
            time.sleep(self.latency)

        with self._lock:
            self.calls.append((method, list(params)))
            return handler(list(params))

    def close(self) -> None:
        self.closed = True

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _owned_coins(self, owner: str, coin_type: Optional[str]) -> List[Dict[str, Any]]:
        if self.owner is not None and owner != self.owner:
            return []
        coin_type = coin_type or DEFAULT_COIN_TYPE
        return [dict(c) for c in self._coins.values() if c["coinType"] == coin_type]

    def _get_coins(self, params: List[Any]) -> Dict[str, Any]:
        owner, coin_type, cursor, limit = (params + [None] * 4)[:4]
        coins = self._owned_coins(owner, coin_type)

        start = 0
        if cursor is not None:
            ids = [c["coinObjectId"] for c in coins]
            if cursor not in ids:
                raise RemoteRPCError(INVALID_PARAMS, f"invalid cursor: {cursor}", method="suix_getCoins")
            start = ids.index(cursor) + 1

        limit = limit or 50
        page = coins[start:start + limit]
        has_next = start + limit < len(coins)
        return {
            "data": page,
            "nextCursor": page[-1]["coinObjectId"] if page else None,
            "hasNextPage": has_next,
        }

    def _get_balance(self, params: List[Any]) -> Dict[str, Any]:
        owner, coin_type = (params + [None] * 2)[:2]
        coins = self._owned_coins(owner, coin_type)
        return {
            "coinType": coin_type or DEFAULT_COIN_TYPE,
            "coinObjectCount": len(coins),
            "totalBalance": str(sum(int(c["balance"]) for c in coins)),
            "lockedBalance": {},
        }

    def _get_object(self, params: List[Any]) -> Dict[str, Any]:
        object_id = params[0] if params else None
        if object_id in self._objects:
            return {
                "data": {
                    "objectId": object_id,
                    "version": "1",
                    "digest": digest_for(object_id.encode("utf-8")),
                    "type": self._objects[object_id],
                    "content": {"dataType": "moveObject", "type": self._objects[object_id]},
                }
            }
        if object_id in self._coins:
            coin = self._coins[object_id]
            return {"data": {"objectId": object_id, "version": coin["version"], "digest": coin["digest"],
                             "type": f"0x2::coin::Coin<{coin['coinType']}>"}}
        return {"error": {"code": "notExists", "object_id": object_id}}

    def _current_epoch(self, params: List[Any]) -> Dict[str, Any]:
        return {"epoch": str(self.epoch)}

    def _get_transaction(self, params: List[Any]) -> Dict[str, Any]:
        digest = params[0] if params else None
        if digest not in self._transactions:
            raise RemoteRPCError(
                INVALID_PARAMS,
                f"Could not find the referenced transaction [TransactionDigest({digest})]",
                method="sui_getTransactionBlock",
            )
        return self._transactions[digest]

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def _move_call(self, params: List[Any]) -> Dict[str, Any]:
        if not params or not isinstance(params[0], dict):
            raise RemoteRPCError(INVALID_PARAMS, "move call parameters are required", method="unsafe_moveCall")
        call = dict(params[0])
        for key in ("signer", "packageObjectId", "module", "function"):
            if not call.get(key):
                raise RemoteRPCError(INVALID_PARAMS, f"missing field {key}", method="unsafe_moveCall")

        call["nonce"] = next(self._nonce)
        tx_bytes = json.dumps(call, sort_keys=True).encode("utf-8")
        return {"txBytes": b64encode(tx_bytes), "gas": [], "inputObjects": []}

    def _decode_tx(self, tx_b64: Any, method: str) -> tuple:
        try:
            raw = base64.b64decode(tx_b64, validate=True)
            return raw, json.loads(raw)
        except (binascii.Error, TypeError, ValueError) as e:
            raise RemoteRPCError(INVALID_PARAMS, f"invalid transaction bytes: {e}", method=method) from e

    def _dry_run(self, params: List[Any]) -> Dict[str, Any]:
        self._decode_tx(params[0] if params else None, "sui_dryRunTransactionBlock")
        return {"effects": {"status": {"status": "success"}, "gasUsed": dict(STUB_GAS_USED)}, "events": []}

    def _execute(self, params: List[Any]) -> Dict[str, Any]:
        method = "sui_executeTransactionBlock"
        tx_b64, signatures = (params + [None] * 2)[:2]
        raw, call = self._decode_tx(tx_b64, method)

        if not signatures or not all(verify_signature(sig, raw) for sig in signatures):
            raise RemoteRPCError(INVALID_SIGNATURE, "Invalid user signature", method=method)

        digest = digest_for(raw)
        if digest in self._transactions:
            return self._transactions[digest]

        error, events = self._apply(call)
        effects: Dict[str, Any] = {"status": {"status": "success" if error is None else "failure"},
                                   "gasUsed": dict(STUB_GAS_USED)}
        if error is not None:
            effects["status"]["error"] = error
            events = []

        result = {"digest": digest, "effects": effects, "events": events}
        self._transactions[digest] = result
        logger.info(f"Simulated {call['function']} transaction {digest}: {effects['status']['status']}")
        return result

    def _apply(self, call: Dict[str, Any]) -> tuple:
        """Apply a Move call to the coin table, returning (error, events)"""
        args = call.get("arguments") or []
        event_prefix = f"{call['packageObjectId']}::{call['module']}::"

        gas = call.get("gas")
        if gas and gas not in self._coins:
            return f"gas coin {gas} not found", []

        if self._check_objects and (not args or args[0] not in self._objects):
            return f"ObjectNotFound: {args[0] if args else None}", []

        if call["function"] == "external_stake":
            _, requester_coin, accepter_coin, amount = (args + [None] * 4)[:4]
            amount = int(amount or 0)
            for coin_id in (requester_coin, accepter_coin):
                coin = self._coins.get(coin_id)
                if coin is None:
                    return f"InputObjectDeleted: coin {coin_id} is not available", []
                if int(coin["balance"]) < amount:
                    return f"InsufficientCoinBalance in coin {coin_id}", []
            if requester_coin == accepter_coin:
                return "duplicate payment coin", []
            for coin_id in (requester_coin, accepter_coin):
                del self._coins[coin_id]
            return None, [{
                "type": event_prefix + "ExternalGameStaked",
                "sender": call["signer"],
                "transactionModule": call["module"],
                "parsedJson": {"stake_amount": str(amount), "total_pool": str(amount * 2)},
            }]

        if call["function"] == "external_pay_winner":
            _, requester, accepter, requester_score, accepter_score, stake = (args + [None] * 6)[:6]
            return None, [{
                "type": event_prefix + "ExternalGameCompleted",
                "sender": call["signer"],
                "transactionModule": call["module"],
                "parsedJson": {
                    "requester": requester,
                    "accepter": accepter,
                    "requester_score": requester_score,
                    "accepter_score": accepter_score,
                    "stake_amount": stake,
                },
            }]

        return None, []
