"""Incentives contract: reward coins paid per epoch to holders of qualifying locks."""

from __future__ import annotations

from chaincontracts.incentives_state import (
    EpochInfo,
    EpochOutOfBoundsError,
    EpochProcessBlockError,
    Funding,
    FundsRequiredError,
    NothingToWithdrawError,
    Program,
    ProgramFinishedError,
    ProgramNotFoundError,
    new_incentives_program_event,
    new_program_funding_event,
)
from chaincontracts.lockup import Lockup
from chaincontracts.types import (
    BankSend,
    Coin,
    Env,
    MessageInfo,
    Response,
    StdError,
    add_coins,
)

_DECIMAL_ONE = 10**18


def _ownership_share(amount: int, qualified: int, total: int) -> int:
    """``amount`` times ``qualified / total``, with the ratio kept to 18 decimal places."""
    if total == 0:
        raise StdError("Denominator must not be zero")
    ratio = qualified * _DECIMAL_ONE // total
    return amount * ratio // _DECIMAL_ONE


class Incentives:
    """State and entry points of the incentives contract.

    Locks are looked up in the given lockup contract.
    """

    def __init__(self, lockup: Lockup) -> None:
        self.lockup = lockup
        self._last_program_id = 0
        self._programs: dict[int, Program] = {}
        self._last_funding_id = 0
        self._fundings: dict[int, Funding] = {}
        self._last_epoch_processed: dict[int, int] = {}
        self._epochs: dict[tuple[int, int], EpochInfo] = {}
        self._withdrawals: dict[tuple[int, str], int] = {}

    def _program(self, program_id: int) -> Program:
        try:
            return self._programs[program_id]
        except KeyError:
            raise ProgramNotFoundError(program_id) from None

    def create_program(
        self,
        env: Env,
        denom: str,
        epochs: int,
        epoch_block_duration: int,
        min_lockup_blocks: int,
    ) -> Response:
        """Start a program rewarding locks of ``denom`` over ``epochs`` epochs from this block."""
        program_id = self._last_program_id + 1
        program = Program(
            id=program_id,
            epochs=epochs,
            epoch_duration=epoch_block_duration,
            min_lockup_duration_blocks=min_lockup_blocks,
            lockup_denom=denom,
            start_block=env.block_height,
            end_block=env.block_height + epochs * epoch_block_duration,
        )
        self._last_program_id = program_id
        self._programs[program_id] = program
        return Response().add_event(new_incentives_program_event(program))

    def fund_program(self, env: Env, info: MessageInfo, program_id: int) -> Response:
        """Add the sent coins to a program, split evenly over its remaining epochs."""
        if not info.funds:
            raise FundsRequiredError()
        program = self._program(program_id)
        if program.end_block <= env.block_height:
            raise ProgramFinishedError(program_id, program.end_block, env.block_height)

        response = Response().add_event(new_program_funding_event(program_id, info.funds))
        pay_from_epoch = program.epoch_to_pay_from(env.block_height)
        remaining_epochs = program.epochs - pay_from_epoch + 1
        for coin in info.funds:
            self._last_funding_id += 1
            funding_id = self._last_funding_id
            self._fundings[funding_id] = Funding(
                id=funding_id,
                program_id=program_id,
                pay_from_epoch=pay_from_epoch,
                denom=coin.denom,
                initial_amount=coin.amount,
                to_pay_each_epoch=coin.amount // remaining_epochs,
            )
        return response

    def process_epoch(self, env: Env, program_id: int) -> Response:
        """Close the program's next epoch; the response data holds its ``EpochInfo``."""
        program = self._program(program_id)
        epoch_to_process = self._last_epoch_processed.get(program_id, 0) + 1
        if epoch_to_process > program.epochs:
            raise EpochOutOfBoundsError(epoch_to_process, program_id)

        epoch_process_block = program.start_block + epoch_to_process * program.epoch_duration
        if env.block_height <= epoch_process_block:
            raise EpochProcessBlockError(epoch_to_process, program_id, epoch_process_block)

        qualification_block = epoch_process_block + program.min_lockup_duration_blocks
        locks = self.lockup.locks_by_denom_between(
            env, program.lockup_denom, epoch_process_block, qualification_block
        )
        total_locked = sum(lock.coin.amount for lock in locks)

        to_distribute: list[Coin] = []
        for funding in self.program_funding(program_id):
            if funding.pay_from_epoch <= epoch_to_process:
                to_distribute = add_coins(
                    to_distribute, Coin(funding.to_pay_each_epoch, funding.denom)
                )

        epoch_info = EpochInfo(
            epoch_identifier=epoch_to_process,
            for_coins_locked_before=epoch_process_block,
            for_coins_unlocking_after=qualification_block,
            to_distribute=to_distribute,
            total_locked=total_locked,
        )
        self._last_epoch_processed[program_id] = epoch_to_process
        self._epochs[(program_id, epoch_to_process)] = epoch_info
        return Response(data=epoch_info)

    def withdraw_rewards(self, env: Env, info: MessageInfo, program_id: int) -> Response:
        """Pay the sender their share of every processed epoch not yet withdrawn."""
        program = self._program(program_id)
        sender = info.sender
        last_withdrawal = self._withdrawals.get((program_id, sender))
        epochs_to_pay = [
            self._epochs[(pid, number)]
            for pid, number in sorted(self._epochs)
            if pid == program_id and (last_withdrawal is None or number > last_withdrawal)
        ]

        last_paid_epoch = 0
        to_distribute: list[Coin] = []
        for epoch in epochs_to_pay:
            locks = self.lockup.locks_by_denom_and_address_between(
                env,
                program.lockup_denom,
                sender,
                epoch.for_coins_locked_before,
                epoch.for_coins_unlocking_after,
            )
            qualified = sum(lock.coin.amount for lock in locks)
            for coin in epoch.to_distribute:
                share = _ownership_share(coin.amount, qualified, epoch.total_locked)
                to_distribute = add_coins(to_distribute, Coin(share, coin.denom))
            last_paid_epoch = epoch.epoch_identifier

        if last_paid_epoch == 0:
            raise NothingToWithdrawError("")

        self._withdrawals[(program_id, sender)] = last_paid_epoch
        return Response().add_message(BankSend(to_address=sender, amount=to_distribute))

    def program_funding(self, program_id: int) -> list[Funding]:
        """A program's fundings, ordered by the epoch they pay from, then by id."""
        return sorted(
            (funding for funding in self._fundings.values() if funding.program_id == program_id),
            key=lambda funding: (funding.pay_from_epoch, funding.id),
        )

    def epoch_info(self, program_id: int, epoch_number: int) -> EpochInfo:
        try:
            return self._epochs[(program_id, epoch_number)]
        except KeyError:
            raise StdError(
                f"epoch {epoch_number} of program {program_id} not found"
            ) from None