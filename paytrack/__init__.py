"""Account, authentication and transaction-ledger backend for payment tracking."""

__version__ = "0.1.0"
