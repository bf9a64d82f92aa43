from collections import Counter, defaultdict
from dataclasses import replace

import pytest

from chaincontracts.incentives import Incentives
from chaincontracts.incentives_state import (
    EpochInfo,
    EpochOutOfBoundsError,
    EpochProcessBlockError,
    Funding,
    FundsRequiredError,
    NothingToWithdrawError,
    ProgramFinishedError,
    ProgramNotFoundError,
)
from chaincontracts.lockup import Lockup
from chaincontracts.types import BankSend, Coin, Env, MessageInfo, StdError

ROOT = "root"


class _Chain:
    def __init__(self):
        self.env = Env()
        self.lockup = Lockup()
        self.incentives = Incentives(self.lockup)
        self.balances = defaultdict(Counter)

    def advance(self, blocks):
        self.env = replace(self.env, block_height=self.env.block_height + blocks)

    def mint_and_lock(self, user, coins, blocks):
        self.lockup.lock(self.env, MessageInfo(user, list(coins)), blocks)

    def create_program(self, denom, epochs, duration, min_lockup):
        return self.incentives.create_program(self.env, denom, epochs, duration, min_lockup)

    def fund(self, coins, program_id=1):
        return self.incentives.fund_program(self.env, MessageInfo(ROOT, list(coins)), program_id)

    def process(self, program_id=1):
        return self.incentives.process_epoch(self.env, program_id).data

    def withdraw(self, user, program_id=1):
        response = self.incentives.withdraw_rewards(self.env, MessageInfo(user), program_id)
        for message in response.messages:
            assert isinstance(message, BankSend)
            for coin in message.amount:
                self.balances[message.to_address][coin.denom] += coin.amount
        return sorted(
            (Coin(amount, denom) for denom, amount in self.balances[user].items() if amount),
            key=lambda coin: coin.denom,
        )


def _advanced(env, blocks):
    return replace(env, block_height=env.block_height + blocks)


@pytest.fixture
def chain():
    return _Chain()


def test_flow(chain):
    chain.mint_and_lock("alice", [Coin(100, "NIBI_LP")], 100)
    chain.create_program("NIBI_LP", 5, 5, 50)
    chain.fund([Coin(1_000, "ATOM")])

    assert chain.incentives.program_funding(1) == [
        Funding(id=1, program_id=1, pay_from_epoch=1, denom="ATOM",
                initial_amount=1000, to_pay_each_epoch=200)
    ]

    chain.advance(6)
    epoch_info = chain.process()
    assert epoch_info == EpochInfo(1, 12350, 12400, [Coin(200, "ATOM")], 100)
    assert chain.incentives.epoch_info(1, 1) == epoch_info

    assert chain.withdraw("alice") == [Coin(200, "ATOM")]

    chain.mint_and_lock("bob", [Coin(200, "NIBI_LP")], 300)
    chain.advance(5)
    chain.process()

    assert chain.withdraw("alice") == [Coin(266, "ATOM")]
    assert chain.withdraw("bob") == [Coin(133, "ATOM")]

    chain.advance(1)
    chain.fund([Coin(1000, "OSMO")])

    chain.advance(4)
    chain.process()
    chain.advance(5)
    chain.process()

    alice_balance = chain.withdraw("alice")
    bob_balance = chain.withdraw("bob")
    assert bob_balance == [Coin(399, "ATOM"), Coin(442, "OSMO")]
    assert alice_balance == [Coin(398, "ATOM"), Coin(220, "OSMO")]

    chain.fund([Coin(1000, "OSMO")])
    chain.advance(5)
    chain.advance(5)
    chain.process()

    assert chain.withdraw("alice") == [Coin(464, "ATOM"), Coin(664, "OSMO")]
    assert chain.withdraw("bob") == [Coin(532, "ATOM"), Coin(1330, "OSMO")]


def test_create_program_event_and_ids():
    incentives = Incentives(Lockup())
    env = Env()
    first = incentives.create_program(env, "NIBI_LP", 5, 5, 50)
    second = incentives.create_program(env, "ATOM", 2, 10, 0)
    attributes = dict(first.events[0].attributes)
    assert first.events[0].type == "new_incentives_program"
    assert attributes == {
        "id": "1",
        "epochs": "5",
        "epoch_duration": "5",
        "end_block": "12370",
        "start_block": "12345",
        "lockup_denom": "NIBI_LP",
        "min_lockup_duration_blocks": "50",
    }
    assert dict(second.events[0].attributes)["id"] == "2"


def test_fund_requires_funds():
    incentives = Incentives(Lockup())
    env = Env()
    incentives.create_program(env, "NIBI_LP", 5, 5, 50)
    with pytest.raises(FundsRequiredError):
        incentives.fund_program(env, MessageInfo(ROOT, []), 1)
    assert incentives.program_funding(1) == []


def test_fund_unknown_program(chain):
    with pytest.raises(ProgramNotFoundError):
        chain.fund([Coin(10, "ATOM")], program_id=7)


def test_fund_finished_program(chain):
    chain.create_program("NIBI_LP", 2, 5, 0)
    chain.advance(10)
    with pytest.raises(ProgramFinishedError) as excinfo:
        chain.fund([Coin(10, "ATOM")])
    assert excinfo.value.end_block == 12355
    assert excinfo.value.current_block == 12355


def test_fund_event_lists_coins(chain):
    chain.create_program("NIBI_LP", 5, 5, 50)
    response = chain.fund([Coin(10, "ATOM")])
    assert response.events[0].type == "incentives_program_funding"
    assert dict(response.events[0].attributes)["coins"] == '[{"denom":"ATOM","amount":"10"}]'


def test_program_funding_ordered_by_pay_from_epoch(chain):
    chain.create_program("NIBI_LP", 5, 5, 50)
    chain.advance(6)
    chain.fund([Coin(400, "OSMO")])
    chain.env = replace(chain.env, block_height=12345)
    chain.fund([Coin(500, "ATOM")])
    fundings = chain.incentives.program_funding(1)
    assert [(f.id, f.pay_from_epoch, f.to_pay_each_epoch) for f in fundings] == [
        (2, 1, 100),
        (1, 2, 100),
    ]


def test_process_epoch_too_early_keeps_state():
    incentives = Incentives(Lockup())
    env = Env()
    incentives.create_program(env, "NIBI_LP", 5, 5, 50)
    env = _advanced(env, 5)
    with pytest.raises(EpochProcessBlockError) as excinfo:
        incentives.process_epoch(env, 1)
    assert excinfo.value.block == 12350
    env = _advanced(env, 1)
    assert incentives.process_epoch(env, 1).data.epoch_identifier == 1


def test_process_epoch_out_of_bounds():
    incentives = Incentives(Lockup())
    env = Env()
    incentives.create_program(env, "NIBI_LP", 1, 5, 0)
    env = _advanced(env, 6)
    assert incentives.process_epoch(env, 1).data.epoch_identifier == 1
    env = _advanced(env, 10)
    with pytest.raises(EpochOutOfBoundsError) as excinfo:
        incentives.process_epoch(env, 1)
    assert excinfo.value.epoch == 2


def test_withdraw_twice_has_nothing(chain):
    chain.mint_and_lock("alice", [Coin(100, "NIBI_LP")], 100)
    chain.create_program("NIBI_LP", 5, 5, 50)
    chain.fund([Coin(1_000, "ATOM")])
    chain.advance(6)
    chain.process()
    assert chain.withdraw("alice") == [Coin(200, "ATOM")]
    with pytest.raises(NothingToWithdrawError):
        chain.withdraw("alice")


def test_withdraw_before_any_epoch():
    incentives = Incentives(Lockup())
    env = Env()
    incentives.create_program(env, "NIBI_LP", 5, 5, 50)
    with pytest.raises(NothingToWithdrawError):
        incentives.withdraw_rewards(env, MessageInfo("alice"), 1)


def test_withdraw_with_no_locked_total_fails(chain):
    chain.create_program("NIBI_LP", 5, 5, 50)
    chain.fund([Coin(1_000, "ATOM")])
    chain.advance(6)
    assert chain.process().total_locked == 0
    with pytest.raises(StdError):
        chain.withdraw("alice")


def test_short_lock_does_not_qualify(chain):
    chain.mint_and_lock("alice", [Coin(100, "NIBI_LP")], 10)
    chain.create_program("NIBI_LP", 5, 5, 50)
    chain.fund([Coin(1_000, "ATOM")])
    chain.advance(6)
    epoch = chain.process()
    assert epoch.total_locked == 0
    assert epoch.to_distribute == [Coin(200, "ATOM")]


def test_epoch_info_missing():
    incentives = Incentives(Lockup())
    env = Env()
    incentives.create_program(env, "NIBI_LP", 5, 5, 50)
    with pytest.raises(StdError):
        incentives.epoch_info(1, 1)