"""
Split Ledger - Source Package

Shared-expense ledger and settlement engine for a personal-finance client.

PRINCIPLES:
1. Remote ledger is the source of truth
2. Derived numbers are always recomputed, never patched
3. Money is exact (Decimal, two places)
4. Failures are classified and surfaced, never swallowed
"""

__version__ = "1.0.0"
__author__ = "Split Ledger Team"
