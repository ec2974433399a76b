"""Token swap client: fixed-rate and constant-product AMM swaps."""

__version__ = "0.1.0"
