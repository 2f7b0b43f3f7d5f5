"""Test package for kb-testkit

Shared fixtures live in conftest.py; index fixtures come from kbtestkit.pytest_plugin.
"""
