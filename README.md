# chaincontracts

In-memory Python models of a set of on-chain contracts for a perpetual
futures exchange. Each contract keeps its state in ordinary Python objects
and exposes its actions as methods that return a `Response` or raise an
exception.

## Contracts

- `chaincontracts.pricefeed.PriceFeed`: whitelisted oracles post prices
  for asset pairs (`post_price`); `begin_block` sets each active pair's
  current price to the median of its unexpired posts and updates a
  time-weighted average (`twap`). Oracles are whitelisted per pair with
  `add_oracle_proposal`. Queries: `price`, `prices`, `raw_prices`,
  `oracles`, `markets`, `twap`.
- `chaincontracts.shifter.Shifter`: whitelist members may send
  `DepthShift` and `PegShift` messages, which come back as
  `ShifterExecMsg` routed to the perp module; the admin manages the
  whitelist with `AddMember`, `RemoveMember` and `ChangeAdmin`
  (from `chaincontracts.whitelist`).
- `chaincontracts.perp.PerpContract`: sudoers members may open and close
  positions, add or remove margin, liquidate several positions and donate
  to the insurance fund; each becomes a `NibiruExecuteMsg`
  (`chaincontracts.perp_msgs`). The admin may `Claim` given funds or the
  contract's whole balance, which becomes a `BankSend`.
- `chaincontracts.lockup.Lockup`: lock coins for a number of blocks,
  start unlocking, withdraw once done, and query locks by denom, owner and
  block range.
- `chaincontracts.incentives.Incentives`: reward programs that pay funded
  coins out each epoch to holders of qualifying locks in a `Lockup`.
  Records, errors and events live in `chaincontracts.incentives_state`.

Shared building blocks (`Coin`, `Event`, `Response`, `MessageInfo`, `Env`,
`BankSend`, `Route`, `StdError`, `add_coins`) live in
`chaincontracts.types`; the `Whitelist` used by the shifter and the perp
contract lives in `chaincontracts.whitelist`.

## Install

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Examples

```python
from chaincontracts.types import Coin, Env, MessageInfo
from chaincontracts.lockup import Lockup

lockup = Lockup()
env = Env(block_height=10)
info = MessageInfo(sender="alice", funds=[Coin(100, "ATOM")])
response = lockup.lock(env, info, blocks=50)

locks = lockup.locks_by_denom_unlocking_after(env, "ATOM", 0)
print([str(lock.coin) for lock in locks])  # ['100ATOM']
```

Errors are reported by raising: for example `lockup.withdraw_funds(env, 99)`
raises `LockNotFoundError` for an unknown lock id.

```python
from chaincontracts.pricefeed import PriceFeed
from chaincontracts.types import Env, MessageInfo

feed = PriceFeed(active_pairs=["ETH:USD"])
feed.add_oracle_proposal(["oracle1"], ["ETH:USD"])

env = Env()
feed.post_price(env, MessageInfo("oracle1"), "ETH", "USD", "2000",
                expiry=env.block_time + 1_000_000_000)
feed.begin_block(env)
print(feed.price("ETH:USD").price)  # 2000
```

`Env.block_time` and price expiries are in nanoseconds. If any active pair
has no unexpired price, `begin_block` raises `NoValidPriceError` and
leaves all prices unchanged.

## What this package does not do

- It does not talk to a chain. Messages placed in a `Response` (routed
  perp messages, bank transfers) are only recorded there; nothing sends
  or executes them.
- State is kept in memory for the life of each contract object; there is
  no persistent storage.
- There is no command-line tool or server; the contracts are used from
  Python code.