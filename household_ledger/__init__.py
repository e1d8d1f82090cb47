"""
Household Ledger - Source Package

A shared ledger for people who split household finances. Records income,
personal and shared expenses and savings goals, and works out how much
each person can safely spend after their share of joint costs.

DESIGN PRINCIPLES:
1. Allocation is a pure function of the ledger snapshot
2. Only the mutation service writes, and only after storage acknowledges
3. Fail early, fail visibly
4. No silent corrections
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Household Ledger Team"
