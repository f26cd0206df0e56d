# pylint: disable=C0114
# pylint: disable=C0115
# pylint: disable=C0116
# pylint: disable=C0303
def test_import_utils_package():
    """Test that the utils package can be imported."""
    import reagent.utils
    assert hasattr(reagent.utils, "parse_google_docstring")
