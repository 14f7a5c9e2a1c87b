"""Claims, raffle, relay, validator-signed bridge, price-oracle and wrapped-token contracts with their wire formats."""

__version__ = "0.1.0"