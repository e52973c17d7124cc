"""
Conformance Test Suite

Normative behavior of the ledger and the protocols built on it. The tests
are organized by invariant:
1. test_conservation.py - Double-entry totals and custody bookkeeping
2. test_atomicity.py - All-or-nothing operations
3. test_idempotency.py - Duplicate execution and read-only queries
4. test_determinism.py - Identical runs and replay
5. test_canonicalization.py - Content-addressable intent ids
6. test_temporal.py - Logical clock, accrual and cooldown windows
7. test_solvency.py - Borrowers can never under-back their own positions

These tests use hypothesis for property-based testing.
"""
