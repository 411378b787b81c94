"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the marketplace ledger.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. test_monotonicity.py - Product ids are dense and strictly increasing
2. test_atomicity.py - Rejected operations change nothing
3. test_availability.py - Availability is monotone; each product sells once
4. test_authorization.py - Only sellers mutate; sellers never buy their own
5. test_history.py - Seller and buyer indices are exact and ordered
6. test_persistence.py - Serialization preserves the full state

These tests use hypothesis for property-based testing.
"""
