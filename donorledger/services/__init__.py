"""
Ledger services: events, aggregation, fees, gateway, payments, renewals, settings.
"""
