"""Value types shared by the contracts: coins, events, bank messages and responses."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from typing import Any, Iterable


class Route(str, enum.Enum):
    """Chain module that a custom message is routed to."""

    PERP = "perp"
    ORACLE = "oracle"
    NO_OP = "no_op"


class StdError(Exception):
    """Generic contract error, such as a missing item in storage."""


@dataclass(frozen=True)
class Coin:
    """An amount of a single denomination."""

    amount: int
    denom: str

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError(f"coin amount must not be negative: {self.amount}")

    def __str__(self) -> str:
        return f"{self.amount}{self.denom}"

    def to_dict(self) -> dict[str, str]:
        return {"denom": self.denom, "amount": str(self.amount)}


@dataclass
class Event:
    """A typed event with ordered key/value attributes."""

    type: str
    attributes: list[tuple[str, str]] = field(default_factory=list)

    def add_attribute(self, key: str, value: Any) -> Event:
        self.attributes.append((key, str(value)))
        return self


@dataclass
class BankSend:
    """A bank transfer of coins to an address."""

    to_address: str
    amount: list[Coin] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "bank": {
                "send": {
                    "to_address": self.to_address,
                    "amount": [coin.to_dict() for coin in self.amount],
                }
            }
        }


@dataclass
class Response:
    """The result of a contract call: messages, attributes, events and data."""

    messages: list[Any] = field(default_factory=list)
    attributes: list[tuple[str, str]] = field(default_factory=list)
    events: list[Event] = field(default_factory=list)
    data: Any = None

    def add_message(self, message: Any) -> Response:
        self.messages.append(message)
        return self

    def add_attribute(self, key: str, value: Any) -> Response:
        self.attributes.append((key, str(value)))
        return self

    def add_event(self, event: Event) -> Response:
        self.events.append(event)
        return self


@dataclass
class MessageInfo:
    """Who sent a message and which funds came with it."""

    sender: str
    funds: list[Coin] = field(default_factory=list)


@dataclass
class Env:
    """The chain environment a contract call runs in.

    ``block_time`` is in nanoseconds since the epoch.
    """

    block_height: int = 12_345
    block_time: int = 1_571_797_419_879_305_533
    contract_address: str = "cosmos2contract"

    @property
    def block_seconds(self) -> int:
        return self.block_time // 1_000_000_000


def add_coins(coins: Iterable[Coin], coin: Coin) -> list[Coin]:
    """Return ``coins`` with ``coin`` merged into the entry of the same denom.

    A coin of a new denomination is appended at the end.
    """
    merged = list(coins)
    for position, existing in enumerate(merged):
        if existing.denom == coin.denom:
            merged[position] = replace(existing, amount=existing.amount + coin.amount)
            return merged
    merged.append(coin)
    return merged