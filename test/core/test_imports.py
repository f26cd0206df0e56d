# pylint: disable=C0114
# pylint: disable=C0115
# pylint: disable=C0116
# pylint: disable=C0303
def test_import_core_package():
    """Test that the core package can be imported."""
    import reagent.core
    assert reagent.core is not None

    # Test accessing exported symbols
    assert hasattr(reagent.core, "AgentCore")
    assert hasattr(reagent.core, "ToolCall")
    assert hasattr(reagent.core, "ToolError")
    assert hasattr(reagent.core, "ToolNotFound")


def test_import_submodules():
    """Test that core submodules can be imported."""
    import reagent.core.agent_core
    import reagent.core.parser
    import reagent.core.model

    assert hasattr(reagent.core.agent_core, "AgentCore")
    assert hasattr(reagent.core.parser, "ToolCallParser")
    assert hasattr(reagent.core.model, "truncate_result")


def test_direct_imports():
    """Test direct imports of core classes."""
    from reagent.core import AgentCore, ToolCall, ToolError, InferenceError

    assert AgentCore.__name__ == "AgentCore"
    assert issubclass(ToolError, Exception)
    assert issubclass(InferenceError, Exception)
    assert ToolCall(name="x").arguments == {}


def test_top_level_package():
    """Test the package root exposes the main entry points."""
    import reagent
    assert reagent.__version__
    for name in reagent.__all__:
        assert hasattr(reagent, name)
