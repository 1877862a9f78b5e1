"""Test suite for the systematic review meta-analysis toolkit.

This package contains unit tests covering effect size calculation,
pooling, reporting, record deduplication and the CLI. To run the tests,
execute `pytest` from the project root.
"""
