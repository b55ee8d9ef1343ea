"""
Tests for the in-process stub node.
"""
import base64
import json

import pytest

from jollfi_sdk.chain.signer import Ed25519Signer
from jollfi_sdk.chain.stub_transport import StubTransport
from jollfi_sdk.exceptions import RemoteRPCError, TransportError

OWNER = "0x" + "11" * 32


def build(transport, function="external_stake", arguments=None, **extra):
    call = {
        "signer": OWNER,
        "packageObjectId": "0xpkg",
        "module": "jollfi_wallet",
        "function": function,
        "typeArguments": [],
        "arguments": arguments or [],
        "gasBudget": "10000000",
    }
    call.update(extra)
    return transport.call("unsafe_moveCall", [call])["txBytes"]


class TestStubTransport:
    """Tests for StubTransport."""

    def test_unknown_method(self):
        with pytest.raises(RemoteRPCError) as excinfo:
            StubTransport().call("sui_unknown", [])
        assert excinfo.value.rpc_code == -32601

    def test_closed(self):
        transport = StubTransport()
        transport.close()
        with pytest.raises(TransportError):
            transport.call("suix_getCurrentEpoch", [])

    def test_coins_filtered_by_owner(self):
        transport = StubTransport(owner=OWNER, coins={"0x1": 10})
        assert transport.call("suix_getCoins", ["0xsomeone", None, None, 50])["data"] == []
        assert len(transport.call("suix_getCoins", [OWNER, None, None, 50])["data"]) == 1

    def test_coins_filtered_by_type(self):
        transport = StubTransport(coins={"0x1": 10})
        transport.add_coin("0x2", 20, coin_type="0xabc::usdc::USDC")

        page = transport.call("suix_getCoins", [OWNER, "0xabc::usdc::USDC", None, 50])

        assert [c["coinObjectId"] for c in page["data"]] == ["0x2"]

    def test_invalid_cursor(self):
        with pytest.raises(RemoteRPCError):
            StubTransport(coins={"0x1": 10}).call("suix_getCoins", [OWNER, None, "0xnope", 50])

    def test_build_is_base64_json(self):
        transport = StubTransport()
        tx = json.loads(base64.b64decode(build(transport, arguments=["0xpool"])))
        assert tx["function"] == "external_stake"
        assert tx["arguments"] == ["0xpool"]

    def test_build_requires_fields(self):
        with pytest.raises(RemoteRPCError):
            StubTransport().call("unsafe_moveCall", [{"signer": OWNER}])

    def test_execute_rejects_bad_signature(self):
        transport = StubTransport()
        tx_b64 = build(transport)
        other = Ed25519Signer.generate().sign(b"something else")
        with pytest.raises(RemoteRPCError) as excinfo:
            transport.call("sui_executeTransactionBlock", [tx_b64, [other], {}])
        assert excinfo.value.rpc_code == -32002

    def test_execute_consumes_stake_coins(self):
        signer = Ed25519Signer.generate()
        transport = StubTransport(coins={"0x1": 100, "0x2": 100, "0x3": 100})
        tx_b64 = build(transport, arguments=["0xpool", "0x1", "0x2", "50"])

        result = transport.call(
            "sui_executeTransactionBlock", [tx_b64, [signer.sign(base64.b64decode(tx_b64))], {}]
        )

        assert result["effects"]["status"]["status"] == "success"
        assert result["events"][0]["type"] == "0xpkg::jollfi_wallet::ExternalGameStaked"
        assert transport.coin_ids == ["0x3"]

    def test_execute_insufficient_balance(self):
        signer = Ed25519Signer.generate()
        transport = StubTransport(coins={"0x1": 10, "0x2": 100})
        tx_b64 = build(transport, arguments=["0xpool", "0x1", "0x2", "50"])

        result = transport.call(
            "sui_executeTransactionBlock", [tx_b64, [signer.sign(base64.b64decode(tx_b64))], {}]
        )

        assert result["effects"]["status"]["status"] == "failure"
        assert result["events"] == []
        assert transport.coin_ids == ["0x1", "0x2"]

    def test_unknown_transaction(self):
        with pytest.raises(RemoteRPCError, match="Could not find"):
            StubTransport().call("sui_getTransactionBlock", ["abc", {}])

    def test_balance(self):
        balance = StubTransport(coins={"0x1": 10, "0x2": 5}).call("suix_getBalance", [OWNER, None])
        assert balance["totalBalance"] == "15"
        assert balance["coinObjectCount"] == 2

    def test_records_calls(self):
        transport = StubTransport(epoch=9)
        assert transport.call("suix_getCurrentEpoch", []) == {"epoch": "9"}
        assert transport.calls == [("suix_getCurrentEpoch", [])]
