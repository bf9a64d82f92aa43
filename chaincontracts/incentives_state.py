"""State records, errors and events of the incentives contract."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Iterable

from chaincontracts.types import Coin, Event

NEW_PROGRAM_EVENT_NAME = "new_incentives_program"
PROGRAM_FUNDING_EVENT_NAME = "incentives_program_funding"


class IncentivesError(Exception):
    """Base error of the incentives contract."""


class NothingToWithdrawError(IncentivesError):
    def __init__(self, reason: str = "") -> None:
        super().__init__(f"no rewards to withdraw: {reason}")
        self.reason = reason


class FundsRequiredError(IncentivesError):
    def __init__(self) -> None:
        super().__init__("funds required")


class EpochOutOfBoundsError(IncentivesError):
    def __init__(self, epoch: int, program_id: int) -> None:
        super().__init__(f"epoch out of bounds for program {program_id}: {epoch}")
        self.epoch = epoch
        self.program_id = program_id


class EpochProcessBlockError(IncentivesError):
    def __init__(self, epoch: int, program_id: int, block: int) -> None:
        super().__init__(
            f"epoch {epoch} for program {program_id} can be processed after block {block}"
        )
        self.epoch = epoch
        self.program_id = program_id
        self.block = block


class ProgramFinishedError(IncentivesError):
    def __init__(self, program_id: int, end_block: int, current_block: int) -> None:
        super().__init__(
            f"incentives program has finished at block {end_block} "
            f"(current block: {current_block}): {program_id}"
        )
        self.program_id = program_id
        self.end_block = end_block
        self.current_block = current_block


class ProgramNotFoundError(IncentivesError):
    def __init__(self, program_id: int) -> None:
        super().__init__(f"incentives program not found: {program_id}")
        self.program_id = program_id


@dataclass(frozen=True)
class Funding:
    """Coins given to a program, paid out in equal parts from an epoch on."""

    id: int
    program_id: int
    pay_from_epoch: int
    denom: str
    initial_amount: int
    to_pay_each_epoch: int


@dataclass(frozen=True)
class Program:
    """An incentives program rewarding locks of one denomination."""

    id: int
    epochs: int
    epoch_duration: int
    min_lockup_duration_blocks: int
    lockup_denom: str
    start_block: int
    end_block: int

    def epoch_to_pay_from(self, funding_block: int) -> int:
        """The first epoch whose end block lies after ``funding_block``."""
        epoch = next(
            (
                number
                for number in range(1, self.epochs + 1)
                if number * self.epoch_duration + self.start_block > funding_block
            ),
            None,
        )
        if epoch is None:
            raise ProgramFinishedError(self.id, self.end_block, funding_block)
        return epoch


@dataclass(frozen=True)
class EpochInfo:
    """What a processed epoch distributes and to which locks."""

    epoch_identifier: int
    for_coins_locked_before: int
    for_coins_unlocking_after: int
    to_distribute: list[Coin] = field(default_factory=list)
    total_locked: int = 0


def new_incentives_program_event(program: Program) -> Event:
    return (
        Event(NEW_PROGRAM_EVENT_NAME)
        .add_attribute("id", program.id)
        .add_attribute("epochs", program.epochs)
        .add_attribute("epoch_duration", program.epoch_duration)
        .add_attribute("end_block", program.end_block)
        .add_attribute("start_block", program.start_block)
        .add_attribute("lockup_denom", program.lockup_denom)
        .add_attribute("min_lockup_duration_blocks", program.min_lockup_duration_blocks)
    )


def new_program_funding_event(program_id: int, coins: Iterable[Coin]) -> Event:
    encoded = json.dumps([coin.to_dict() for coin in coins], separators=(",", ":"))
    return (
        Event(PROGRAM_FUNDING_EVENT_NAME)
        .add_attribute("id", program_id)
        .add_attribute("coins", encoded)
    )