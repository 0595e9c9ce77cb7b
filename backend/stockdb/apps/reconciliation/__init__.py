"""
Reconciliation of rejected and short lots.

Pure ledger/status/guard logic plus the actions that drive inventory through
an InventoryGateway.
"""
