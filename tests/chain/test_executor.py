"""
Tests for TransactionExecutor.
"""
import base64
import logging
from unittest.mock import MagicMock

import pytest

from jollfi_sdk.chain.builder import TransactionBuilder
from jollfi_sdk.chain.executor import TransactionExecutor
from jollfi_sdk.chain.signer import Ed25519Signer, verify_signature
from jollfi_sdk.exceptions import (
    InvalidRequestError, RemoteRPCError, TransactionFailedError, TransportError,
    TransportTimeoutError,
)
from jollfi_sdk.models import CallDescriptor, ObjectArg
from jollfi_sdk.utils import digest_for

PACKAGE_ID = "0x" + "a1" * 32
MODULE = "jollfi_wallet"
TX_BYTES = b"unsigned transaction"
DIGEST = digest_for(TX_BYTES)


def execution_result(status="success", error=None, events=None, digest=DIGEST):
    status_obj = {"status": status}
    if error:
        status_obj["error"] = error
    return {
        "digest": digest,
        "effects": {
            "status": status_obj,
            "gasUsed": {"computationCost": "10", "storageCost": "20", "storageRebate": "5"},
        },
        "events": events if events is not None else [],
    }


class FakeNode:
    """Transport answering build and execute calls with canned results."""

    def __init__(self, result):
        self.result = result
        self.calls = []

    def call(self, method, params):
        self.calls.append((method, params))
        if method == "unsafe_moveCall":
            return {"txBytes": base64.b64encode(TX_BYTES).decode()}
        if isinstance(self.result, Exception):
            raise self.result
        return self.result

    def close(self):
        pass


@pytest.fixture
def signer():
    return Ed25519Signer(bytes(range(32)))


@pytest.fixture
def descriptor(signer):
    return CallDescriptor(
        signer=signer.address,
        package_object_id=PACKAGE_ID,
        module=MODULE,
        function="external_stake",
        arguments=(ObjectArg(object_id="0xpool"),),
    )


def executor_for(node, signer, logger=None):
    return TransactionExecutor(node, signer, TransactionBuilder(node), logger=logger)


class TestExecute:
    """Tests for TransactionExecutor.execute."""

    def test_success_returns_digest_and_events(self, signer, descriptor):
        event = {"type": f"{PACKAGE_ID}::{MODULE}::ExternalGameStaked", "parsedJson": {"stake_amount": "100"}}
        node = FakeNode(execution_result(events=[event]))

        result = executor_for(node, signer).execute(descriptor, "ExternalGameStaked")

        assert result.digest == DIGEST
        assert result.succeeded
        assert result.gas_used.total == 25
        assert result.find_event(f"{PACKAGE_ID}::{MODULE}::ExternalGameStaked") is not None

    def test_submits_signed_bytes(self, signer, descriptor):
        node = FakeNode(execution_result())

        executor_for(node, signer).execute(descriptor, "ExternalGameStaked")

        method, params = node.calls[-1]
        assert method == "sui_executeTransactionBlock"
        tx_b64, signatures, options = params
        assert base64.b64decode(tx_b64) == TX_BYTES
        assert verify_signature(signatures[0], TX_BYTES)
        assert options == {"showEffects": True, "showEvents": True}

    def test_failure_status_raises(self, signer, descriptor):
        """Effects status other than success is a failed transaction"""
        node = FakeNode(execution_result(status="failure", error="InsufficientCoinBalance"))

        with pytest.raises(TransactionFailedError) as excinfo:
            executor_for(node, signer).execute(descriptor, "ExternalGameStaked")

        assert excinfo.value.status == "failure"
        assert excinfo.value.digest == DIGEST
        assert "failure" in str(excinfo.value)
        assert "InsufficientCoinBalance" in str(excinfo.value)

    def test_missing_status_is_success(self, signer, descriptor):
        node = FakeNode({"digest": DIGEST, "events": []})
        result = executor_for(node, signer).execute(descriptor, "ExternalGameStaked")
        assert result.effects_status is None
        assert result.succeeded

    def test_missing_event_only_warns(self, signer, descriptor):
        node = FakeNode(execution_result(events=[]))
        logger = MagicMock(spec=logging.Logger)

        result = executor_for(node, signer, logger=logger).execute(descriptor, "ExternalGameStaked")

        assert result.digest == DIGEST
        warnings = [c.args[0] for c in logger.warning.call_args_list]
        assert any("ExternalGameStaked" in w for w in warnings)

    def test_missing_event_warning_is_rate_limited(self, signer, descriptor):
        node = FakeNode(execution_result(events=[]))
        logger = MagicMock(spec=logging.Logger)
        executor = executor_for(node, signer, logger=logger)

        executor.execute(descriptor, "ExternalGameStaked")
        executor.execute(descriptor, "ExternalGameStaked")

        assert logger.warning.call_count == 1

    def test_missing_event_warning_names_each_transaction(self, signer, descriptor):
        """Different transactions each get their own warning"""
        other = digest_for(b"another transaction")
        node = FakeNode(execution_result(events=[]))
        logger = MagicMock(spec=logging.Logger)
        executor = executor_for(node, signer, logger=logger)

        executor.execute(descriptor, "ExternalGameStaked")
        node.result = execution_result(events=[], digest=other)
        executor.execute(descriptor, "ExternalGameStaked")

        warnings = [c.args[0] for c in logger.warning.call_args_list]
        assert len(warnings) == 2
        assert DIGEST in warnings[0]
        assert other in warnings[1]

    def test_malformed_event_does_not_fail_success(self, signer, descriptor):
        """A successful transaction stays successful when its events are unreadable"""
        node = FakeNode({
            "digest": DIGEST,
            "effects": {"status": {"status": "success"}},
            "events": [{"parsedJson": {"x": 1}}],
        })

        result = executor_for(node, signer).execute(descriptor, "ExternalGameStaked")

        assert result.digest == DIGEST
        assert result.succeeded
        assert result.events == ()

    def test_malformed_entries_are_skipped(self, signer, descriptor):
        staked = {"type": f"{PACKAGE_ID}::{MODULE}::ExternalGameStaked", "parsedJson": {"stake_amount": "100"}}
        node = FakeNode({
            "digest": DIGEST,
            "effects": {"status": {"status": "success"}, "gasUsed": {"computationCost": "lots"}},
            "events": ["garbage", {"parsedJson": {"x": 1}}, staked],
        })
        logger = MagicMock(spec=logging.Logger)

        result = executor_for(node, signer, logger=logger).execute(descriptor, "ExternalGameStaked")

        assert result.gas_used is None
        assert len(result.events) == 1
        assert result.find_event(f"{PACKAGE_ID}::{MODULE}::ExternalGameStaked") is not None
        logger.warning.assert_not_called()

    def test_malformed_event_on_failed_transaction_still_raises(self, signer, descriptor):
        node = FakeNode({
            "digest": DIGEST,
            "effects": {"status": {"status": "failure", "error": "MoveAbort"}},
            "events": [{"parsedJson": {}}],
        })

        with pytest.raises(TransactionFailedError, match="MoveAbort"):
            executor_for(node, signer).execute(descriptor, "ExternalGameStaked")

    def test_event_with_short_package_id_matches(self, signer):
        """Nodes may report the package id without leading zeros"""
        padded = "0x" + "00" * 31 + "0a"
        descriptor = CallDescriptor(
            signer=signer.address, package_object_id=padded, module=MODULE, function="external_stake",
        )
        node = FakeNode(execution_result(events=[{"type": f"0xa::{MODULE}::ExternalGameStaked"}]))
        logger = MagicMock(spec=logging.Logger)
        executor = TransactionExecutor(node, signer, TransactionBuilder(node), logger=logger)

        executor.execute(descriptor, "ExternalGameStaked")

        logger.warning.assert_not_called()

    def test_empty_digest(self, signer, descriptor):
        node = FakeNode(execution_result(digest=""))
        with pytest.raises(TransportError, match="no digest"):
            executor_for(node, signer).execute(descriptor, "ExternalGameStaked")

    def test_non_object_result(self, signer, descriptor):
        node = FakeNode(["unexpected"])
        with pytest.raises(TransportError):
            executor_for(node, signer).execute(descriptor, "ExternalGameStaked")

    def test_remote_error_propagates_without_retry(self, signer, descriptor):
        node = FakeNode(RemoteRPCError(-32002, "Invalid user signature", method="sui_executeTransactionBlock"))

        with pytest.raises(RemoteRPCError):
            executor_for(node, signer).execute(descriptor, "ExternalGameStaked")

        executes = [m for m, _ in node.calls if m == "sui_executeTransactionBlock"]
        assert len(executes) == 1


class TestTransactionLookup:
    """Tests for get_transaction and wait_for_transaction."""

    def test_invalid_digest_never_reaches_node(self, signer):
        node = FakeNode(execution_result())
        with pytest.raises(InvalidRequestError):
            executor_for(node, signer).get_transaction("not-a-digest")
        assert node.calls == []

    def test_get_transaction(self, signer):
        node = FakeNode(execution_result())

        result = executor_for(node, signer).get_transaction(DIGEST)

        assert result.digest == DIGEST
        method, params = node.calls[0]
        assert method == "sui_getTransactionBlock"
        assert params[0] == DIGEST
        assert params[1]["showEffects"] is True

    def test_wait_polls_until_found(self, signer):
        node = MagicMock()
        node.call.side_effect = [
            RemoteRPCError(-32602, "Could not find the referenced transaction"),
            RemoteRPCError(-32602, "Could not find the referenced transaction"),
            execution_result(),
        ]
        executor = TransactionExecutor(node, signer, TransactionBuilder(node))

        result = executor.wait_for_transaction(DIGEST, timeout=60, poll_interval=0)

        assert result.digest == DIGEST
        assert node.call.call_count == 3

    def test_wait_times_out(self, signer):
        node = MagicMock()
        node.call.side_effect = RemoteRPCError(-32602, "Could not find the referenced transaction")
        executor = TransactionExecutor(node, signer, TransactionBuilder(node))

        with pytest.raises(TransportTimeoutError):
            executor.wait_for_transaction(DIGEST, timeout=0, poll_interval=1)
