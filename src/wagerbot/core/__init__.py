"""Session engine core: component router, ledger, session controller."""
