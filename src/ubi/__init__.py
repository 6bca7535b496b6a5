"""UBI — universal basic income accrual over a fungible balance ledger."""

__version__ = "0.1.0"
