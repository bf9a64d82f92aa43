"""Messages of the perp bindings contract and their routed wire form."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field, fields, is_dataclass
from decimal import Decimal, localcontext
from typing import Any, Optional, Union

from chaincontracts.types import Coin, Response, Route


def _check_non_negative(name: str, value: Any) -> None:
    if value < 0:
        raise ValueError(f"{name} must not be negative: {value}")


@dataclass(frozen=True)
class OpenPosition:
    """Open a position on a market."""

    pair: str
    is_long: bool
    quote_amount: int
    leverage: Decimal
    base_amount_limit: int

    def __post_init__(self) -> None:
        _check_non_negative("quote_amount", self.quote_amount)
        _check_non_negative("leverage", self.leverage)
        _check_non_negative("base_amount_limit", self.base_amount_limit)


@dataclass(frozen=True)
class ClosePosition:
    """Close the sender's position on a market."""

    pair: str


@dataclass(frozen=True)
class AddMargin:
    """Add margin to a position."""

    pair: str
    margin: Coin


@dataclass(frozen=True)
class RemoveMargin:
    """Remove margin from a position."""

    pair: str
    margin: Coin


@dataclass(frozen=True)
class LiquidationArgs:
    """A trader's position to liquidate."""

    pair: str
    trader: str


@dataclass(frozen=True)
class MultiLiquidate:
    """Liquidate several positions at once."""

    pair: str
    liquidations: list[LiquidationArgs] = field(default_factory=list)


@dataclass(frozen=True)
class DonateToInsuranceFund:
    """Give coins to the insurance fund."""

    donation: Coin


@dataclass(frozen=True)
class Claim:
    """Send contract funds to an address: either given funds or everything."""

    to: str
    funds: Optional[Coin] = None
    claim_all: Optional[bool] = None


@dataclass(frozen=True)
class NoOp:
    """A message that does nothing."""


PerpMsg = Union[
    OpenPosition,
    ClosePosition,
    AddMargin,
    RemoveMargin,
    MultiLiquidate,
    DonateToInsuranceFund,
    Claim,
    NoOp,
]


def _snake_case(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def _serialize(value: Any) -> Any:
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, Route):
        return value.value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, Decimal):
        with localcontext() as ctx:
            ctx.prec = 80
            return format(value.normalize(), "f")
    if isinstance(value, Coin):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_serialize(item) for item in value]
    if is_dataclass(value):
        return {f.name: _serialize(getattr(value, f.name)) for f in fields(value)}
    raise TypeError(f"cannot serialize {type(value).__name__}")


@dataclass(frozen=True)
class NibiruExecuteMsg:
    """A perp message wrapped with the chain module it is routed to."""

    route: Route
    msg: PerpMsg

    @classmethod
    def open_position(
        cls,
        pair: str,
        is_long: bool,
        quote_amount: int,
        leverage: Decimal,
        base_amount_limit: int,
    ) -> NibiruExecuteMsg:
        return cls(
            Route.PERP,
            OpenPosition(pair, is_long, quote_amount, leverage, base_amount_limit),
        )

    @classmethod
    def close_position(cls, pair: str) -> NibiruExecuteMsg:
        return cls(Route.PERP, ClosePosition(pair))

    @classmethod
    def add_margin(cls, pair: str, margin: Coin) -> NibiruExecuteMsg:
        return cls(Route.PERP, AddMargin(pair, margin))

    @classmethod
    def remove_margin(cls, pair: str, margin: Coin) -> NibiruExecuteMsg:
        return cls(Route.PERP, RemoveMargin(pair, margin))

    @classmethod
    def multi_liquidate(cls, pair: str, liquidations: list[LiquidationArgs]) -> NibiruExecuteMsg:
        return cls(Route.PERP, MultiLiquidate(pair, list(liquidations)))

    @classmethod
    def donate_to_insurance_fund(cls, donation: Coin) -> NibiruExecuteMsg:
        return cls(Route.PERP, DonateToInsuranceFund(donation))

    @classmethod
    def no_op(cls) -> NibiruExecuteMsg:
        return cls(Route.NO_OP, NoOp())

    def to_dict(self) -> dict[str, Any]:
        return {
            "route": self.route.value,
            "msg": {_snake_case(type(self.msg).__name__): _serialize(self.msg)},
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)


def msg_to_response(msg: Any) -> Response:
    """Wrap a single message in a response."""
    return Response().add_message(msg)