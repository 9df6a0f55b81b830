"""Pytest configuration and shared fixtures for npuref tests."""

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--run-slow", action="store_true", default=False,
        help="Run LLaMA-scale tiled/direct equivalence tests",
    )


def pytest_configure(config):
    config.addinivalue_line("markers", "slow: large-dimension reference checks")


def pytest_collection_modifyitems(config, items):
    if not config.getoption("--run-slow"):
        skip_slow = pytest.mark.skip(reason="needs --run-slow option to run")
        for item in items:
            if "slow" in item.keywords:
                item.add_marker(skip_slow)
