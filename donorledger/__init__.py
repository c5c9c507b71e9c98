"""
Donation ledger service.

Tracks donors, campaigns, transactions and subscriptions, keeps donor and
campaign running totals in sync with completed transactions, and bridges an
external payment gateway with local bookkeeping.
"""
__version__ = "1.0.0"
