"""Attendance sync package.

``attendance`` holds the server side (batch gateway, store tiers, Flask
routes); ``ledger`` holds the client side (ledger, diff, debounced autosave,
reconciliation) that talks to it.
"""
