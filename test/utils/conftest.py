"""
Fixtures for utils tests.
"""

import pytest


@pytest.fixture
def simple_docstring():
    """Fixture providing a simple docstring."""
    return """
    A simple function.

    This is a longer description.

    Args:
        param1 (str): A string parameter.
        param2 (int): An integer parameter.

    Returns:
        bool: A boolean return value.
    """


@pytest.fixture
def complex_docstring():
    """Fixture providing a docstring with nested parameters and constraints."""
    return """
    Search the catalog.

    Args:
        query (str): Text to look for.
        limit (int, optional): Maximum results. Minimum: 1 Maximum: 50
        filters (dict): Filter object:
            owner (str): Owner uuid.
            since (str, optional): Start timestamp.
        tags (list[str], optional): Tags to match.

    Returns:
        list: Matching entries.
    """
