"""
Accounts module.

Companies, users, login and per-module access rights.
"""
