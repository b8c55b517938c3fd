"""Checklist Test Suite

Test organization:
- unit/: Unit tests for individual modules
  - automation/: instants, notification store, daily reset, roll chain, dispatch
  - tasks/: lifecycle engine and task catalog
- integration/: End-to-end task flows, the CLI and the runner

Running tests:
    # All tests
    pytest

    # Specific module
    pytest tests/unit/automation/

    # Only the end-to-end scenarios
    pytest -m integration
"""
