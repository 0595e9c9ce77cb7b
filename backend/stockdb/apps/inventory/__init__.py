"""
Inventory module.

SKU catalog, incoming/outgoing records, the stock movement ledger, and the
rejected/short item reports that reconciliation works on.
"""
