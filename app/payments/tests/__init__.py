"""
Tests for payments app.

This package contains test modules for:
- test_policies.py: Tier parsing, fee arithmetic, policy resolution
- test_state_transitions.py: PaymentHold / PaymentProfile FSM transitions
- test_hold_transitions.py: transition_hold compare-and-swap writes
- test_locks.py: DistributedLock
- test_*_service.py: Schedulers, settlement and reconciliation
- test_workers.py: Celery tasks
- test_views.py: API endpoint tests

Usage:
    pytest app/payments/tests/
    pytest app/payments/tests/test_cancellation_service.py
"""
