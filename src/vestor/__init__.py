"""
Vestor - Linear token vesting with escrowed grants

A grantor escrows a fixed amount of one asset for a beneficiary. The grant
unlocks linearly over a vesting period, optionally behind a cliff, and can be
revoked by the grantor unless it was created irrevocable.

Main Components:
- Unlock calculator: cliff and linear unlock arithmetic
- Vesting program: create / claim / revoke lifecycle
- Registry: ticket sequence counter and vault authority
- Ledger: funds-transfer collaborator and its in-memory implementation
"""

__version__ = "0.1.0"
__author__ = "Vestor Development Team"

__all__ = []
