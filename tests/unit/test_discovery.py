"""
Unit tests for namespace-based entity discovery and package scanning.
"""

from __future__ import annotations

import logging
import sys
import types
from typing import Protocol

import pytest
from sqlalchemy import Integer
from sqlalchemy.orm import DeclarativeBase, mapped_column

from common_api.discovery import find_entity_types, is_entity_type, scan_package
from tests.dto import MockAuditedBase, MockBase, MockCustomer, MockProduct, ProductPatch


class _Named(Protocol):
    name: str


def _module_with_entity(module_name: str) -> tuple[types.ModuleType, type]:
    """Build a module holding one mapped class under its own declarative base."""

    class LocalBase(DeclarativeBase):
        pass

    entity = type(
        "Foo",
        (LocalBase,),
        {
            "__module__": module_name,
            "__tablename__": "foo",
            "id": mapped_column(Integer, primary_key=True),
            "size": mapped_column(Integer, nullable=True),
        },
    )
    module = types.ModuleType(module_name)
    module.LocalBase = LocalBase  # type: ignore[attr-defined]
    module.Foo = entity  # type: ignore[attr-defined]
    return module, entity


def _package(module_name: str) -> types.ModuleType:
    package = types.ModuleType(module_name)
    package.__path__ = []  # type: ignore[attr-defined]
    return package


def _package_tree() -> dict[str, types.ModuleType]:
    """``App.Dto`` package with a plain module, a re-export and a nested subpackage."""
    product_module, product = _module_with_entity("App.Dto.Product")
    legacy_module, _ = _module_with_entity("App.Dto.Legacy.Models")
    package = _package("App.Dto")
    package.Foo = product  # type: ignore[attr-defined]
    return {
        "App": _package("App"),
        "App.Dto": package,
        "App.Dto.Product": product_module,
        "App.Dto.Legacy": _package("App.Dto.Legacy"),
        "App.Dto.Legacy.Models": legacy_module,
    }


class TestIsEntityType:
    @pytest.mark.parametrize("candidate", [MockProduct, MockCustomer])
    def test_accepts_mapped_classes(self, candidate: type) -> None:
        assert is_entity_type(candidate)

    @pytest.mark.parametrize(
        "candidate",
        [MockBase, MockAuditedBase, ProductPatch, _Named, MockProduct.__table__, "MockProduct"],
    )
    def test_rejects_everything_else(self, candidate: object) -> None:
        assert not is_entity_type(candidate)


class TestFindEntityTypes:
    def test_finds_classes_defined_in_namespace(self) -> None:
        assert find_entity_types("tests.dto") == [MockProduct, MockCustomer]

    def test_namespace_match_ignores_case(self, monkeypatch: pytest.MonkeyPatch) -> None:
        module, entity = _module_with_entity("App.Dto")
        monkeypatch.setitem(sys.modules, "App.Dto", module)

        assert find_entity_types("app.dto") == [entity]
        assert find_entity_types("APP.DTO") == [entity]

    def test_skips_classes_imported_from_elsewhere(self) -> None:
        module = types.ModuleType("app.reexports")
        module.MockProduct = MockProduct  # type: ignore[attr-defined]

        assert find_entity_types("app.reexports", modules={"app.reexports": module}) == []

    def test_package_namespace_spans_its_plain_modules(self) -> None:
        modules = _package_tree()
        product = modules["App.Dto.Product"].Foo  # type: ignore[attr-defined]

        assert find_entity_types("app.dto", modules=modules) == [product]

    def test_subpackages_are_separate_namespaces(self) -> None:
        modules = _package_tree()
        legacy = modules["App.Dto.Legacy.Models"].Foo  # type: ignore[attr-defined]

        assert find_entity_types("app", modules=modules) == []
        assert find_entity_types("app.dto.legacy", modules=modules) == [legacy]

    def test_unknown_namespace_yields_nothing(self) -> None:
        assert find_entity_types("no.such.namespace") == []

    @pytest.mark.parametrize("namespace", ["", "  "])
    def test_blank_namespace_is_an_error(self, namespace: str) -> None:
        with pytest.raises(ValueError, match="namespace"):
            find_entity_types(namespace)


class TestScanPackage:
    def test_imports_modules_and_skips_failures(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="common_api.discovery"):
            imported = scan_package("tests.fixtures.scan_pkg")

        assert "tests.fixtures.scan_pkg" in imported
        assert "tests.fixtures.scan_pkg.models" in imported
        assert "tests.fixtures.scan_pkg.broken" not in imported
        failures = [r for r in caplog.records if "tests.fixtures.scan_pkg.broken" in r.getMessage()]
        assert len(failures) == 1
        assert failures[0].exc_info is not None

    def test_scanned_entities_become_discoverable(self) -> None:
        scan_package("tests.fixtures.scan_pkg")

        (invoice,) = find_entity_types("TESTS.FIXTURES.SCAN_PKG.MODELS")
        assert invoice.__name__ == "MockInvoice"

    def test_scanned_package_is_a_namespace(self) -> None:
        scan_package("tests.fixtures.scan_pkg")

        (invoice,) = find_entity_types("tests.fixtures.scan_pkg")
        assert invoice.__name__ == "MockInvoice"
        assert find_entity_types("tests.fixtures") == []

    def test_plain_module_is_returned_as_is(self) -> None:
        assert scan_package("tests.dto") == ["tests.dto"]

    def test_missing_package_propagates(self) -> None:
        with pytest.raises(ModuleNotFoundError):
            scan_package("tests.fixtures.does_not_exist")
