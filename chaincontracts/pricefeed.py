"""Oracle price feed: whitelisted oracles post prices, each block takes the median."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_DOWN, Decimal, localcontext
from typing import Iterable, Union

from chaincontracts.types import Env, Event, MessageInfo, Response, StdError

PAIR_SEPARATOR = ":"
_NANOS = 1_000_000_000
_PLACES = Decimal(1).scaleb(-18)
_PREC = 80

Number = Union[Decimal, int, str]


class PricefeedError(Exception):
    """Base error of the price feed."""


class InvalidAssetPairError(PricefeedError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"invalid asset pair: {reason}")
        self.reason = reason


class UnauthorizedError(PricefeedError):
    def __init__(self, address: str) -> None:
        super().__init__(f"action unauthorized: for {address}")
        self.address = address


class ExpiredError(PricefeedError):
    def __init__(self) -> None:
        super().__init__("expired")


class NegativePriceError(PricefeedError):
    def __init__(self) -> None:
        super().__init__("negative price")


class NoValidPriceError(PricefeedError):
    def __init__(self) -> None:
        super().__init__("no valid price")


def _to_decimal(value: Number) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def _divide(numerator: Decimal, denominator: Decimal) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = _PREC
        return (numerator / denominator).quantize(_PLACES, rounding=ROUND_DOWN)


def _format_decimal(value: Decimal) -> str:
    with localcontext() as ctx:
        ctx.prec = _PREC
        return format(value.normalize(), "f")


def _format_timestamp(nanos: int) -> str:
    return f"{nanos // _NANOS}.{nanos % _NANOS:09d}"


@dataclass(frozen=True)
class AssetPair:
    """Two tokens joined as ``token0:token1``."""

    token0: str
    token1: str

    @classmethod
    def parse(cls, value: str) -> AssetPair:
        parts = value.split(PAIR_SEPARATOR)
        if len(parts) != 2:
            raise InvalidAssetPairError("invalid separator")
        return cls(parts[0], parts[1])

    def inverse(self) -> AssetPair:
        return AssetPair(self.token1, self.token0)

    def __str__(self) -> str:
        return PAIR_SEPARATOR.join((self.token0, self.token1))


@dataclass(frozen=True)
class PostedPrice:
    pair_id: str
    oracle: str
    price: Decimal
    expiry: int


@dataclass(frozen=True)
class CurrentPrice:
    pair_id: str
    price: Decimal


@dataclass(frozen=True)
class CurrentTwap:
    pair_id: str
    numerator: Decimal
    denominator: Decimal
    price: Decimal


@dataclass(frozen=True)
class Market:
    pair_id: str
    oracles: list[str] = field(default_factory=list)
    active: bool = True


def calculate_median_price(prices: Iterable[Decimal]) -> Decimal:
    """Median of the prices; the mean of the two middle values for an even count."""
    ordered = sorted(prices)
    if not ordered:
        raise ValueError("cannot take the median of no prices")
    middle = len(ordered) // 2
    if len(ordered) % 2 == 0:
        with localcontext() as ctx:
            ctx.prec = _PREC
            total = ordered[middle - 1] + ordered[middle]
        return _divide(total, Decimal(2))
    return ordered[middle]


class PriceFeed:
    """State and entry points of the price feed contract."""

    def __init__(self, active_pairs: Iterable[str] = ()) -> None:
        self._active_pairs = {str(AssetPair.parse(pair_id)) for pair_id in active_pairs}
        self._whitelist: set[tuple[str, str]] = set()
        self._raw_prices: dict[tuple[str, str], PostedPrice] = {}
        self._current_prices: dict[str, Decimal] = {}
        self._twaps: dict[str, CurrentTwap] = {}

    def post_price(
        self,
        env: Env,
        info: MessageInfo,
        token0: str,
        token1: str,
        price: Number,
        expiry: int,
    ) -> Response:
        """Record an oracle's price for a pair, inverted when stored under the inverse pair."""
        price = _to_decimal(price)
        sender = info.sender
        pair = AssetPair(token0, token1)
        whitelisted = (str(pair), sender) in self._whitelist
        inverse_whitelisted = (str(pair.inverse()), sender) in self._whitelist
        if not (whitelisted or inverse_whitelisted):
            raise UnauthorizedError(sender)

        if expiry < env.block_time:
            raise ExpiredError()
        if price < 0:
            raise NegativePriceError()

        target = pair
        if str(pair.inverse()) in self._active_pairs:
            target = pair.inverse()
        if (str(target), sender) not in self._whitelist:
            raise UnauthorizedError(sender)
        if target != pair:
            if price == 0:
                raise PricefeedError("cannot invert a zero price")
            price = _divide(Decimal(1), price)

        pair_id = str(target)
        self._raw_prices[(pair_id, sender)] = PostedPrice(pair_id, sender, price, expiry)

        event = (
            Event("oracle_price_update")
            .add_attribute("pair_id", pair_id)
            .add_attribute("oracle", sender)
            .add_attribute("price", _format_decimal(price))
            .add_attribute("expiry", _format_timestamp(expiry))
        )
        return Response().add_event(event)

    def begin_block(self, env: Env) -> Response:
        """Set each active pair's current price to the median of unexpired posts and update its TWAP.

        If any active pair has no valid price, nothing is changed.
        """
        current = dict(self._current_prices)
        twaps = dict(self._twaps)
        seconds = Decimal(env.block_seconds)
        for pair_id in sorted(self._active_pairs):
            valid = [
                self._raw_prices[key].price
                for key in sorted(self._raw_prices)
                if key[0] == pair_id and self._raw_prices[key].expiry > env.block_time
            ]
            if not valid:
                raise NoValidPriceError()
            median = calculate_median_price(valid)
            current[pair_id] = median

            previous = twaps.get(
                pair_id, CurrentTwap(pair_id, Decimal(0), Decimal(0), Decimal(0))
            )
            with localcontext() as ctx:
                ctx.prec = _PREC
                numerator = previous.numerator + median * seconds
                denominator = previous.denominator + seconds
            twap_price = median if denominator == 0 else _divide(numerator, denominator)
            twaps[pair_id] = CurrentTwap(pair_id, numerator, denominator, twap_price)

        self._current_prices = current
        self._twaps = twaps
        return Response()

    def add_oracle_proposal(self, oracles: Iterable[str], pairs: Iterable[str]) -> Response:
        """Whitelist every oracle for every pair; all pairs must be valid."""
        oracles = list(oracles)
        pair_ids = [str(AssetPair.parse(pair)) for pair in pairs]
        self._whitelist.update((pair_id, oracle) for pair_id in pair_ids for oracle in oracles)
        return Response()

    def price(self, pair_id: str) -> CurrentPrice:
        try:
            return CurrentPrice(pair_id, self._current_prices[pair_id])
        except KeyError:
            raise StdError(f"current price for {pair_id} not found") from None

    def prices(self) -> list[CurrentPrice]:
        return [CurrentPrice(pair_id, self._current_prices[pair_id]) for pair_id in sorted(self._current_prices)]

    def raw_prices(self, pair_id: str) -> list[PostedPrice]:
        return [self._raw_prices[key] for key in sorted(self._raw_prices) if key[0] == pair_id]

    def oracles(self) -> list[str]:
        return sorted({oracle for _, oracle in self._whitelist})

    def markets(self) -> list[Market]:
        return [
            Market(
                pair_id=pair_id,
                oracles=sorted(oracle for pair, oracle in self._whitelist if pair == pair_id),
                active=True,
            )
            for pair_id in sorted(self._active_pairs)
        ]

    def twap(self, pair_id: str) -> CurrentTwap:
        try:
            return self._twaps[pair_id]
        except KeyError:
            raise StdError(f"twap for {pair_id} not found") from None