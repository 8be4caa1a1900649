"""Tests for recount package exports and metadata."""

import pytest

import recount


class TestPackageMetadata:
    """Package-level exports and metadata."""

    def test_version_string(self) -> None:
        assert isinstance(recount.__version__, str)
        assert "0.1.0" in recount.__version__

    def test_free_threading_declaration(self) -> None:
        assert recount._Py_mod_gil == 0

    def test_all_exports_resolvable(self) -> None:
        for name in recount.__all__:
            assert getattr(recount, name) is not None

    def test_lazy_export_is_the_defining_object(self) -> None:
        from recount.history.store import EventStore

        assert recount.EventStore is EventStore

    def test_invalid_attribute_raises(self) -> None:
        with pytest.raises(AttributeError, match="no attribute"):
            recount.nonexistent_thing  # type: ignore[attr-defined]  # noqa: B018
