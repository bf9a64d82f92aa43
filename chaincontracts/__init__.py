"""In-memory models of price feed, shifter, perp, lockup and incentives contracts."""

__version__ = "0.1.0"
__all__ = [
    "types",
    "whitelist",
    "pricefeed",
    "shifter",
    "perp_msgs",
    "perp",
    "lockup",
    "incentives_state",
    "incentives",
]