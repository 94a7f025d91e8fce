"""Tests for trill.registry — model type resolution."""

import collections
import sys
from types import ModuleType

import pytest

from trill.errors import UnresolvedModelTypeError
from trill.registry import TypeRegistry, load_type, qualified_name, resolve_model_type


class Invoice:
    class Line:
        pass


class Customer:
    pass


def _this_module() -> ModuleType:
    return sys.modules[__name__]


class TestQualifiedName:
    def test_module_class(self) -> None:
        assert qualified_name(Invoice) == f"{__name__}.Invoice"

    def test_nested_class(self) -> None:
        assert qualified_name(Invoice.Line) == f"{__name__}.Invoice.Line"

    def test_builtin(self) -> None:
        assert qualified_name(dict) == "dict"


class TestLoadType:
    def test_stdlib_class(self) -> None:
        assert load_type("collections.OrderedDict") is collections.OrderedDict

    def test_nested_class(self) -> None:
        assert load_type(f"{__name__}.Invoice.Line") is Invoice.Line

    def test_builtin_simple_name(self) -> None:
        assert load_type("dict") is dict

    def test_unknown_module(self) -> None:
        assert load_type("no_such_module_xyz.Thing") is None

    def test_unknown_attribute(self) -> None:
        assert load_type("collections.NoSuchThing") is None

    def test_non_class_attribute(self) -> None:
        assert load_type("collections.namedtuple") is None

    def test_invalid_identifier(self) -> None:
        assert load_type("not a.name") is None


class TestTypeRegistry:
    def test_scans_classes_of_modules(self) -> None:
        registry = TypeRegistry([_this_module()])
        assert Invoice in registry.types
        assert Customer in registry.types

    def test_module_names(self) -> None:
        registry = TypeRegistry(["collections", _this_module()])
        assert registry.module_names == ("collections", __name__)

    def test_unimportable_module_is_skipped(self) -> None:
        registry = TypeRegistry(["no_such_module_xyz", _this_module()])
        assert Customer in registry.types

    def test_package_includes_imported_submodules(self) -> None:
        import collections.abc

        registry = TypeRegistry(["collections"])
        assert collections.abc.Mapping in registry.types

    def test_find_by_qualified_name(self) -> None:
        registry = TypeRegistry([_this_module()])
        assert registry.find_by_qualified_name(f"{__name__}.Customer") is Customer
        assert registry.find_by_qualified_name("Customer") is None

    def test_find_by_simple_name(self) -> None:
        registry = TypeRegistry([_this_module()])
        assert registry.find_by_simple_name("Customer") is Customer
        assert registry.find_by_simple_name("Nope") is None

    def test_scan_happens_once(self) -> None:
        registry = TypeRegistry([_this_module()])
        assert registry.types is registry.types


class TestResolveModelType:
    def test_no_declaration_without_passed_type_is_object(self) -> None:
        assert resolve_model_type(None) is object
        assert resolve_model_type("   ") is object

    def test_no_declaration_uses_passed_type(self) -> None:
        assert resolve_model_type(None, Customer) is Customer

    def test_declaration_beats_passed_type(self) -> None:
        assert resolve_model_type(f"{__name__}.Invoice", Customer) is Invoice

    def test_fully_qualified_through_import_system(self) -> None:
        assert resolve_model_type("collections.OrderedDict") is collections.OrderedDict

    def test_simple_name_through_registry(self) -> None:
        registry = TypeRegistry([_this_module()])
        assert resolve_model_type("Customer", registry=registry) is Customer

    def test_first_module_wins_for_simple_names(self) -> None:
        first = ModuleType("trill_test_first")
        second = ModuleType("trill_test_second")
        first.Widget = type("Widget", (), {"__module__": "trill_test_first"})  # type: ignore[attr-defined]
        second.Widget = type("Widget", (), {"__module__": "trill_test_second"})  # type: ignore[attr-defined]

        registry = TypeRegistry([first, second])

        assert resolve_model_type("Widget", registry=registry) is first.Widget  # type: ignore[attr-defined]

    def test_unknown_declaration_raises(self) -> None:
        registry = TypeRegistry([_this_module()])
        with pytest.raises(UnresolvedModelTypeError) as exc_info:
            resolve_model_type("Ghost", Customer, registry)
        assert exc_info.value.name == "Ghost"
        assert exc_info.value.known_modules == (__name__,)
        assert f"{__name__}.Customer" in exc_info.value.candidates

    def test_unknown_declaration_without_registry_raises(self) -> None:
        with pytest.raises(UnresolvedModelTypeError):
            resolve_model_type("no_such_module_xyz.Ghost")
