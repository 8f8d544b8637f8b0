"""
Retail operations core: batches, sales, customer ledgers, drawer reconciliation.

Everything that mutates business state goes through
:class:`retail_ops.modules.state.store.Store`.
"""

__version__ = "0.3.0"
