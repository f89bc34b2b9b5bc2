# AyuTrace Test Suite
"""
Unit and integration tests for the simulated ledger, the contract
ruleset, the supply-chain store and consumer traceability.

Time is virtual (ManualClock) and randomness seeded, so runs are
deterministic.

Run with: pytest
Coverage: coverage run -m pytest && coverage report
"""
