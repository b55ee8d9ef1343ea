"""
Tests for data models.
"""
import pytest
from pydantic import ValidationError

from jollfi_sdk.models import (
    AddressArg, CallDescriptor, Coin, CoinPage, ObjectArg, StakeRecord, StringArg,
    TransactionResult, U64Arg, event_type_matches,
)
from jollfi_sdk.utils import U64_MAX


class TestCoin:
    """Tests for coin parsing."""

    def test_wire_format(self):
        coin = Coin.model_validate({
            "coinObjectId": "0xc1", "balance": "18446744073709551615",
            "coinType": "0x2::sui::SUI", "version": 12, "digest": "abc",
        })
        assert coin.object_id == "0xc1"
        assert coin.balance == U64_MAX

    @pytest.mark.parametrize("balance", ["-1", "1.5", "", "18446744073709551616"])
    def test_invalid_balance(self, balance):
        with pytest.raises(ValidationError):
            Coin.model_validate({"coinObjectId": "0xc1", "balance": balance})

    def test_page_defaults(self):
        page = CoinPage.model_validate({"data": []})
        assert page.next_cursor is None
        assert not page.has_next_page


class TestCallDescriptor:
    """Tests for Move call descriptors."""

    def test_arguments_render_in_order(self):
        descriptor = CallDescriptor(
            signer="0xs", package_object_id="0xp", module="m", function="f",
            arguments=(ObjectArg(object_id="0xpool"), AddressArg(address="0xa"),
                       U64Arg(value=7), StringArg(value="x")),
        )
        assert descriptor.rpc_arguments() == ["0xpool", "0xa", "7", "x"]

    def test_arguments_from_tagged_dicts(self):
        descriptor = CallDescriptor.model_validate({
            "signer": "0xs", "packageObjectId": "0xp", "module": "m", "function": "f",
            "arguments": [{"kind": "object", "object_id": "0xpool"}, {"kind": "u64", "value": 5}],
        })
        assert isinstance(descriptor.arguments[1], U64Arg)
        assert descriptor.rpc_arguments() == ["0xpool", "5"]

    def test_u64_range(self):
        with pytest.raises(ValidationError):
            U64Arg(value=-1)
        with pytest.raises(ValidationError):
            U64Arg(value=U64_MAX + 1)

    def test_gas_budget_must_be_digits(self):
        with pytest.raises(ValidationError):
            CallDescriptor(signer="0xs", package_object_id="0xp", module="m", function="f", gas_budget="1e7")

    def test_immutable(self):
        descriptor = CallDescriptor(signer="0xs", package_object_id="0xp", module="m", function="f")
        with pytest.raises(ValidationError):
            descriptor.gas = "0xg"
        assert descriptor.with_gas_budget("5").gas_budget == "5"
        assert descriptor.gas_budget is None

    def test_event_type(self):
        descriptor = CallDescriptor(signer="0xs", package_object_id="0xp", module="m", function="f")
        assert descriptor.event_type("Done") == "0xp::m::Done"


class TestEventTypeMatches:
    """Tests for event type comparison."""

    def test_exact(self):
        assert event_type_matches("0x1::m::E", "0x1::m::E")

    def test_padded_package(self):
        assert event_type_matches("0x" + "0" * 63 + "1::m::E", "0x1::m::E")

    def test_generic_parameters_ignored(self):
        assert event_type_matches("0x1::m::E<0x2::sui::SUI>", "0x1::m::E")

    @pytest.mark.parametrize("actual", ["0x2::m::E", "0x1::n::E", "0x1::m::F", "garbage"])
    def test_mismatch(self, actual):
        assert not event_type_matches(actual, "0x1::m::E")


class TestTransactionResult:
    """Tests for interpreting node responses."""

    def test_from_rpc(self):
        result = TransactionResult.from_rpc({
            "digest": "d",
            "effects": {
                "status": {"status": "failure", "error": "MoveAbort"},
                "gasUsed": {"computationCost": "3", "storageCost": "2", "storageRebate": "1"},
            },
            "events": [{"type": "0x1::m::E", "parsedJson": {"k": 1}}],
        })
        assert result.effects_status == "failure"
        assert result.error == "MoveAbort"
        assert not result.succeeded
        assert result.gas_used.total == 4
        assert result.find_event("0x1::m::E").parsed_json == {"k": 1}
        assert result.find_event("0x1::m::Other") is None

    def test_unrecognised_status_is_failure(self):
        """Any status other than success counts as failed"""
        result = TransactionResult.from_rpc({"digest": "d", "effects": {"status": {"status": "timeout"}}})
        assert not result.succeeded

    def test_without_effects(self):
        result = TransactionResult.from_rpc({"digest": "d"})
        assert result.succeeded
        assert result.events == ()

    def test_malformed_events_are_dropped(self, caplog):
        with caplog.at_level("WARNING", logger="jollfi_sdk.models"):
            result = TransactionResult.from_rpc({
                "digest": "d",
                "effects": {"status": {"status": "success"}, "gasUsed": "n/a"},
                "events": [{"parsedJson": {"x": 1}}, {"type": "0x1::m::E"}],
            })
        assert result.succeeded
        assert result.gas_used is None
        assert [e.type for e in result.events] == ["0x1::m::E"]
        assert "Skipping malformed event in d" in caplog.text


def test_stake_record_defaults():
    record = StakeRecord(
        requester_coin_id="0xc1", accepter_coin_id="0xc2",
        requester_address="0xa", accepter_address="0xb",
        stake_amount=1, transaction_digest="d",
    )
    assert record.status == "completed"
    assert record.timestamp > 0
