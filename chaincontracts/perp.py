"""Perp bindings contract: sudoers-gated trading messages and fund claims."""

from __future__ import annotations

import copy
from typing import Iterable, Mapping, Optional

from chaincontracts.perp_msgs import (
    AddMargin,
    Claim,
    ClosePosition,
    DonateToInsuranceFund,
    MultiLiquidate,
    NibiruExecuteMsg,
    NoOp,
    OpenPosition,
    PerpMsg,
    RemoveMargin,
    msg_to_response,
)
from chaincontracts.types import BankSend, Coin, Env, MessageInfo, Response, StdError
from chaincontracts.whitelist import Whitelist

CONTRACT_NAME = "cw-nibiru-bindings-perp"
_CLAIM_EVENT_KEY = "execute_claim"


class PerpContract:
    """State and entry points of the perp bindings contract.

    Creating the contract instantiates it: the admin defaults to the sender
    and is the only sudoers member. ``balances`` holds the bank balances
    the contract can see, keyed by address.
    """

    def __init__(
        self,
        info: MessageInfo,
        admin: Optional[str] = None,
        balances: Optional[Mapping[str, Iterable[Coin]]] = None,
    ) -> None:
        admin = info.sender if admin is None else admin
        self.contract_name = CONTRACT_NAME
        self._sudoers = Whitelist(members={admin}, admin=admin)
        self.balances: dict[str, list[Coin]] = {
            address: list(coins) for address, coins in (balances or {}).items()
        }
        self.instantiate_response = (
            Response()
            .add_attribute("action", "instantiate")
            .add_attribute("owner", info.sender)
        )

    def _check_admin(self, sender: str) -> None:
        if not self._sudoers.is_admin(sender):
            raise StdError(f"unauthorized : sender {sender} is not an admin")

    def _check_member(self, sender: str) -> None:
        if not self._sudoers.is_member(sender):
            raise StdError(f"unauthorized : sender {sender} is not a sudoers member")

    def _contract_balance(self, address: str) -> list[Coin]:
        return list(self.balances.get(address, []))

    def execute(self, env: Env, info: MessageInfo, msg: PerpMsg) -> Response:
        """Route a perp message for sudoers members, or send funds for the admin."""
        sender = info.sender

        if isinstance(msg, OpenPosition):
            self._check_member(sender)
            return msg_to_response(
                NibiruExecuteMsg.open_position(
                    msg.pair,
                    msg.is_long,
                    msg.quote_amount,
                    msg.leverage,
                    msg.base_amount_limit,
                )
            )
        if isinstance(msg, ClosePosition):
            self._check_member(sender)
            return msg_to_response(NibiruExecuteMsg.close_position(msg.pair))
        if isinstance(msg, AddMargin):
            self._check_member(sender)
            return msg_to_response(NibiruExecuteMsg.add_margin(msg.pair, msg.margin))
        if isinstance(msg, RemoveMargin):
            self._check_member(sender)
            return msg_to_response(NibiruExecuteMsg.remove_margin(msg.pair, msg.margin))
        if isinstance(msg, MultiLiquidate):
            self._check_member(sender)
            return msg_to_response(
                NibiruExecuteMsg.multi_liquidate(msg.pair, msg.liquidations)
            )
        if isinstance(msg, DonateToInsuranceFund):
            self._check_member(sender)
            return msg_to_response(NibiruExecuteMsg.donate_to_insurance_fund(msg.donation))
        if isinstance(msg, Claim):
            self._check_admin(sender)
            return self._claim(env, msg)
        if isinstance(msg, NoOp):
            return msg_to_response(NibiruExecuteMsg.no_op())
        raise TypeError(f"unsupported message: {type(msg).__name__}")

    def _claim(self, env: Env, msg: Claim) -> Response:
        if msg.claim_all is not None:
            if not msg.claim_all:
                raise StdError(
                    "setting 'claim_all' to false causes an error: "
                    "try removing claim_all as an argument entirely."
                )
            amount = self._contract_balance(env.contract_address)
        elif msg.funds is not None:
            amount = [msg.funds]
        else:
            raise StdError("either the 'funds' or 'claim_all' arguments must be specified")
        return (
            Response()
            .add_message(BankSend(to_address=msg.to, amount=amount))
            .add_attribute(_CLAIM_EVENT_KEY, f"successfully claimed to {msg.to}")
        )

    def sudoers(self) -> Whitelist:
        """The current sudoers: members and admin."""
        return copy.deepcopy(self._sudoers)