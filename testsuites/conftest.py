"""
================================================================================
Root Pytest Configuration
================================================================================

This module provides the root pytest configuration for the entire test suite.
It registers common markers and tags tests by the directory they live in.

================================================================================
"""

from pathlib import Path

import pytest


def pytest_configure(config):
    """Configure pytest with project-wide custom markers."""

    # Priority markers
    config.addinivalue_line(
        "markers", "P0: Critical priority tests - must pass for deployment"
    )
    config.addinivalue_line(
        "markers", "P1: High priority tests - important functionality"
    )
    config.addinivalue_line(
        "markers", "P2: Medium priority tests - edge cases and minor features"
    )
    config.addinivalue_line(
        "markers", "P3: Low priority tests - extensive validation"
    )

    # Test type markers
    config.addinivalue_line(
        "markers", "smoke: Quick verification tests"
    )
    config.addinivalue_line(
        "markers", "regression: Full regression test suite"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests simulating user flows"
    )
    config.addinivalue_line(
        "markers", "mutation: Mutation/negative tests"
    )
    config.addinivalue_line(
        "markers", "unit: Offline tests against the in-memory Taiga"
    )
    config.addinivalue_line(
        "markers", "integration: Tests exercising several components together"
    )

    # Domain markers
    config.addinivalue_line(
        "markers", "api: Live Taiga API tests"
    )
    config.addinivalue_line(
        "markers", "requires_external: Tests requiring a reachable Taiga instance"
    )

    # Feature markers
    config.addinivalue_line(
        "markers", "epic: Tests related to epics"
    )
    config.addinivalue_line(
        "markers", "user_story: Tests related to user stories"
    )
    config.addinivalue_line(
        "markers", "relation: Tests related to epic/user story relations"
    )


def pytest_collection_modifyitems(config, items):
    """
    Modify collected test items.

    Live tests are tagged 'api' and 'requires_external'; offline ones 'unit'.
    """
    for item in items:
        path = Path(str(item.fspath))
        if "api_testing" in path.parts:
            item.add_marker(pytest.mark.api)
            item.add_marker(pytest.mark.requires_external)

        if path.parent.name == "unit":
            item.add_marker(pytest.mark.unit)


def pytest_report_header(config):
    """Add custom header to pytest output."""
    return [
        "",
        "=" * 60,
        "Taiga API Automation Test Suite",
        "=" * 60,
        "",
    ]
