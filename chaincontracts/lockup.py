"""Lockup contract: owners lock coins for a number of blocks and later withdraw them."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, Optional

from chaincontracts.types import BankSend, Coin, Env, Event, MessageInfo, Response

NOT_UNLOCKING_BLOCK_IDENTIFIER = 2**64 - 1
_MAX_KEY = 2**64 - 1

COINS_LOCKED_EVENT_NAME = "coins_locked"
UNLOCK_INITIATION_EVENT_NAME = "unlock_initiated"
LOCK_FUNDS_WITHDRAWN = "funds_withdrawn"


class LockupError(Exception):
    """Base error of the lockup contract."""


class InvalidLockDurationError(LockupError):
    def __init__(self) -> None:
        super().__init__("invalid lock duration")


class InvalidCoinsError(LockupError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"invalid coins: {reason}")
        self.reason = reason


class LockNotFoundError(LockupError):
    def __init__(self, lock_id: int) -> None:
        super().__init__(f"lock not found: {lock_id}")
        self.lock_id = lock_id


class AlreadyUnlockingError(LockupError):
    def __init__(self, lock_id: int) -> None:
        super().__init__(f"already unlocking: {lock_id}")
        self.lock_id = lock_id


class FundsAlreadyWithdrawnError(LockupError):
    def __init__(self, lock_id: int) -> None:
        super().__init__(f"funds already withdrawn: {lock_id}")
        self.lock_id = lock_id


class NotMaturedError(LockupError):
    def __init__(self, lock_id: int) -> None:
        super().__init__(f"not matured: {lock_id}")
        self.lock_id = lock_id


@dataclass(frozen=True)
class Lock:
    """Coins of one denomination locked by an owner."""

    id: int
    coin: Coin
    owner: str
    duration_blocks: int
    start_block: int
    end_block: int = NOT_UNLOCKING_BLOCK_IDENTIFIER
    funds_withdrawn: bool = False


def coins_locked_event(lock_id: int, coin: Coin) -> Event:
    return (
        Event(COINS_LOCKED_EVENT_NAME)
        .add_attribute("id", lock_id)
        .add_attribute("coins", coin)
    )


def unlock_initiation_event(lock_id: int, coin: Coin, unlock_block: int) -> Event:
    return (
        Event(UNLOCK_INITIATION_EVENT_NAME)
        .add_attribute("id", lock_id)
        .add_attribute("coins", coin)
        .add_attribute("unlock_block", unlock_block)
    )


def funds_withdrawn_event(lock_id: int, coin: Coin) -> Event:
    return (
        Event(LOCK_FUNDS_WITHDRAWN)
        .add_attribute("id", lock_id)
        .add_attribute("coins", coin)
    )


class Lockup:
    """State and entry points of the lockup contract."""

    def __init__(self) -> None:
        self._last_id = 0
        self._locks: dict[int, Lock] = {}

    def _get(self, lock_id: int) -> Lock:
        try:
            return self._locks[lock_id]
        except KeyError:
            raise LockNotFoundError(lock_id) from None

    def lock(self, env: Env, info: MessageInfo, blocks: int) -> Response:
        """Create one lock for each coin sent, lasting ``blocks`` once unlocking starts."""
        if blocks == 0:
            raise InvalidLockDurationError()
        if not info.funds:
            raise InvalidCoinsError("no funds")
        zero = next((coin for coin in info.funds if coin.amount == 0), None)
        if zero is not None:
            raise InvalidCoinsError(f"zero coins in denom: {zero.denom}")

        response = Response()
        for coin in info.funds:
            self._last_id += 1
            lock_id = self._last_id
            self._locks[lock_id] = Lock(
                id=lock_id,
                coin=coin,
                owner=info.sender,
                duration_blocks=blocks,
                start_block=env.block_height,
            )
            response.add_event(coins_locked_event(lock_id, coin))
        return response

    def initiate_unlock(self, env: Env, lock_id: int) -> Response:
        """Start the unlocking period of a lock."""
        lock = self._get(lock_id)
        if lock.end_block != NOT_UNLOCKING_BLOCK_IDENTIFIER:
            raise AlreadyUnlockingError(lock_id)
        lock = replace(lock, end_block=env.block_height + lock.duration_blocks)
        self._locks[lock_id] = lock
        return Response().add_event(
            unlock_initiation_event(lock_id, lock.coin, lock.end_block)
        )

    def withdraw_funds(self, env: Env, lock_id: int) -> Response:
        """Send a lock's coins back to its owner."""
        lock = self._get(lock_id)
        if lock.funds_withdrawn:
            raise FundsAlreadyWithdrawnError(lock_id)
        if lock.end_block < env.block_height:
            raise NotMaturedError(lock_id)
        lock = replace(lock, funds_withdrawn=True)
        self._locks[lock_id] = lock
        return (
            Response()
            .add_event(funds_withdrawn_event(lock_id, lock.coin))
            .add_message(BankSend(to_address=lock.owner, amount=[lock.coin]))
        )

    def _matching(self, denom: str, address: Optional[str] = None) -> Iterable[Lock]:
        return (
            lock
            for lock in self._locks.values()
            if lock.coin.denom == denom and (address is None or lock.owner == address)
        )

    @staticmethod
    def _unlocking_after(env: Env, locks: Iterable[Lock], unlocking_after: int) -> list[Lock]:
        selected = sorted(
            (lock for lock in locks if lock.end_block >= unlocking_after),
            key=lambda lock: (lock.end_block, lock.id),
        )
        return [
            lock
            for lock in selected
            if env.block_height + lock.duration_blocks > unlocking_after
        ]

    @staticmethod
    def _between(
        env: Env, locks: Iterable[Lock], locked_before: int, unlocking_after: int
    ) -> list[Lock]:
        selected = sorted(
            (lock for lock in locks if (lock.start_block, lock.id) < (locked_before, _MAX_KEY)),
            key=lambda lock: (lock.start_block, lock.id),
        )
        return [
            lock
            for lock in selected
            if env.block_height + lock.duration_blocks > unlocking_after
        ]

    def locks_by_denom_unlocking_after(
        self, env: Env, denom: str, unlocking_after: int
    ) -> list[Lock]:
        return self._unlocking_after(env, self._matching(denom), unlocking_after)

    def locks_by_denom_and_address_unlocking_after(
        self, env: Env, denom: str, unlocking_after: int, address: str
    ) -> list[Lock]:
        return self._unlocking_after(env, self._matching(denom, address), unlocking_after)

    def locks_by_denom_between(
        self, env: Env, denom: str, locked_before: int, unlocking_after: int
    ) -> list[Lock]:
        return self._between(env, self._matching(denom), locked_before, unlocking_after)

    def locks_by_denom_and_address_between(
        self,
        env: Env,
        denom: str,
        address: str,
        locked_before: int,
        unlocking_after: int,
    ) -> list[Lock]:
        return self._between(
            env, self._matching(denom, address), locked_before, unlocking_after
        )