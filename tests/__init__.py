"""
Payday Planner test suite

- test_utils.py: date arithmetic and money helpers
- test_allocator.py: payday allocation scenarios and invariants
- test_completion.py: completing a payday, idempotence and rollback
- test_routes.py: JSON endpoints

Run all tests:
    pytest tests/
"""
