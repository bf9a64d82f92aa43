"""Whitelist-gated contract that forwards depth and peg shifts to the perp module."""

from __future__ import annotations

import copy
import re
from dataclasses import dataclass, fields, is_dataclass
from decimal import Decimal, localcontext
from typing import Any, Optional, Union

from chaincontracts.types import MessageInfo, Response, Route, StdError
from chaincontracts.whitelist import AddMember, ChangeAdmin, RemoveMember, Whitelist


@dataclass(frozen=True)
class DepthShift:
    """Multiply the depth of a market's reserves."""

    pair: str
    depth_mult: Decimal


@dataclass(frozen=True)
class PegShift:
    """Multiply the peg of a market."""

    pair: str
    peg_mult: Decimal


ShifterMsg = Union[DepthShift, PegShift, AddMember, RemoveMember, ChangeAdmin]


def _snake_case(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def _serialize(value: Any) -> Any:
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, Decimal):
        with localcontext() as ctx:
            ctx.prec = 80
            return format(value.normalize(), "f")
    if isinstance(value, (list, tuple)):
        return [_serialize(item) for item in value]
    if is_dataclass(value):
        return {f.name: _serialize(getattr(value, f.name)) for f in fields(value)}
    raise TypeError(f"cannot serialize {type(value).__name__}")


@dataclass(frozen=True)
class ShifterExecMsg:
    """Custom message emitted by the shifter, routed to a chain module."""

    route: Optional[Route] = None
    msg: Optional[ShifterMsg] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "route": self.route.value if self.route is not None else None,
            "msg": (
                {_snake_case(type(self.msg).__name__): _serialize(self.msg)}
                if self.msg is not None
                else None
            ),
        }


@dataclass(frozen=True)
class ShifterIsMemberResponse:
    is_member: bool
    whitelist: Whitelist


_FORWARDED: dict[type, str] = {
    DepthShift: "depth_shift",
    PegShift: "peg_shift",
}


def _validate_address(address: str) -> str:
    if not address:
        raise StdError("Invalid input: address is empty")
    if address != address.lower():
        raise StdError("Invalid input: address not normalized")
    return address


class Shifter:
    """State and entry points of the shifter contract."""

    def __init__(self, admin: str) -> None:
        self._whitelist = Whitelist(members={admin}, admin=admin)

    def _check_admin(self, sender: str) -> None:
        if not self._whitelist.is_admin(sender):
            raise StdError(f"unauthorized : sender {sender} is not an admin")

    def _check_member(self, sender: str) -> None:
        if not self._whitelist.is_member(sender):
            raise StdError(f"unauthorized : sender {sender} is not a whitelist member")

    def execute(self, info: MessageInfo, msg: ShifterMsg) -> Response:
        """Forward a shift for members, or edit the whitelist for the admin."""
        sender = info.sender
        action = _FORWARDED.get(type(msg))
        if action is not None:
            self._check_member(sender)
            return (
                Response()
                .add_message(ShifterExecMsg(route=Route.PERP, msg=msg))
                .add_attribute("action", action)
            )

        whitelist = copy.deepcopy(self._whitelist)
        if isinstance(msg, AddMember):
            self._check_admin(sender)
            whitelist.members.add(_validate_address(msg.address))
            action = "add_member"
        elif isinstance(msg, RemoveMember):
            self._check_admin(sender)
            whitelist.members.discard(msg.address)
            action = "remove_member"
        elif isinstance(msg, ChangeAdmin):
            self._check_admin(sender)
            new_admin = _validate_address(msg.address)
            whitelist.admin = new_admin
            whitelist.members.add(new_admin)
            action = "change_admin"
        else:
            raise TypeError(f"unsupported message: {type(msg).__name__}")

        self._whitelist = whitelist
        return (
            Response()
            .add_message(ShifterExecMsg(route=Route.NO_OP, msg=None))
            .add_attribute("action", action)
            .add_attribute("address", msg.address)
        )

    def is_member(self, address: str) -> ShifterIsMemberResponse:
        return ShifterIsMemberResponse(
            is_member=self._whitelist.is_member(address),
            whitelist=copy.deepcopy(self._whitelist),
        )

    def whitelist_info(self) -> Whitelist:
        return copy.deepcopy(self._whitelist)