import json

import pytest

from chaincontracts.incentives_state import (
    EpochInfo,
    EpochOutOfBoundsError,
    EpochProcessBlockError,
    FundsRequiredError,
    IncentivesError,
    NothingToWithdrawError,
    Program,
    ProgramFinishedError,
    ProgramNotFoundError,
    new_incentives_program_event,
    new_program_funding_event,
)
from chaincontracts.types import Coin


def make_program(start_block=100, epochs=5, epoch_duration=5):
    return Program(
        id=1,
        epochs=epochs,
        epoch_duration=epoch_duration,
        min_lockup_duration_blocks=50,
        lockup_denom="NIBI_LP",
        start_block=start_block,
        end_block=start_block + epochs * epoch_duration,
    )


def test_program_event_attributes_follow_program():
    program = make_program()
    event = new_incentives_program_event(program)
    assert event.type == "new_incentives_program"
    assert [key for key, _ in event.attributes] == [
        "id",
        "epochs",
        "epoch_duration",
        "end_block",
        "start_block",
        "lockup_denom",
        "min_lockup_duration_blocks",
    ]
    values = dict(event.attributes)
    assert values["end_block"] == str(program.end_block)
    assert values["lockup_denom"] == program.lockup_denom
    assert values["min_lockup_duration_blocks"] == str(program.min_lockup_duration_blocks)


def test_funding_event_encodes_coins_compactly():
    event = new_program_funding_event(1, [Coin(1000, "ATOM")])
    assert event.type == "incentives_program_funding"
    assert dict(event.attributes)["coins"] == '[{"denom":"ATOM","amount":"1000"}]'


def test_funding_event_round_trips_coins():
    coins = [Coin(1, "ATOM"), Coin(22, "OSMO")]
    event = new_program_funding_event(9, coins)
    decoded = json.loads(dict(event.attributes)["coins"])
    assert [Coin(int(item["amount"]), item["denom"]) for item in decoded] == coins
    assert dict(event.attributes)["id"] == "9"


def test_funding_at_start_pays_from_first_epoch():
    program = make_program()
    assert program.epoch_to_pay_from(program.start_block) == 1


@pytest.mark.parametrize("offset", range(0, 25))
def test_epoch_to_pay_from_is_first_epoch_ending_after_block(offset):
    program = make_program()
    block = program.start_block + offset
    epoch = program.epoch_to_pay_from(block)
    assert 1 <= epoch <= program.epochs
    assert program.start_block + epoch * program.epoch_duration > block
    assert program.start_block + (epoch - 1) * program.epoch_duration <= block


def test_epoch_to_pay_from_after_end_fails():
    program = make_program()
    with pytest.raises(ProgramFinishedError) as info:
        program.epoch_to_pay_from(program.end_block)
    assert info.value.end_block == program.end_block
    assert info.value.program_id == program.id


def test_error_messages():
    assert str(FundsRequiredError()) == "funds required"
    assert str(NothingToWithdrawError()).startswith("no rewards to withdraw")
    assert str(EpochOutOfBoundsError(6, 1)) == "epoch out of bounds for program 1: 6"
    assert (
        str(EpochProcessBlockError(1, 2, 105))
        == "epoch 1 for program 2 can be processed after block 105"
    )
    message = str(ProgramFinishedError(1, 125, 130))
    assert message.startswith("incentives program has finished at block 125")


@pytest.mark.parametrize(
    "error",
    [
        NothingToWithdrawError(""),
        FundsRequiredError(),
        EpochOutOfBoundsError(1, 1),
        EpochProcessBlockError(1, 1, 1),
        ProgramFinishedError(1, 1, 1),
        ProgramNotFoundError(4),
    ],
)
def test_errors_share_a_base(error):
    with pytest.raises(IncentivesError) as excinfo:
        raise error
    assert excinfo.value is error
    assert str(excinfo.value)


def test_epoch_info_defaults():
    info = EpochInfo(epoch_identifier=1, for_coins_locked_before=10, for_coins_unlocking_after=60)
    assert info.to_distribute == []
    assert info.total_locked == 0