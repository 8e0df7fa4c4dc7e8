"""
Test suite for derivsim

Contains:
- tests/unit/          : Unit tests for pricing, matching, risk, scoring and session modules
"""
