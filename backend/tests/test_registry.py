"""Tests for the field registry."""

from unittest.mock import MagicMock

import pytest

from valform.errors import DuplicateNameError, MissingNameError
from valform.registry import DuplicatePolicy, FieldRegistry, field_name


class FakeField:
    def __init__(self, name, value=None, validations=None):
        self.name = name
        self.value = value
        self.validations = validations

    def get_value(self):
        return self.value

    def update(self, delta):
        pass


@pytest.fixture
def compile_validator():
    return MagicMock(side_effect=lambda field, rules: f"validator:{field.name}")


@pytest.fixture
def registry(compile_validator):
    return FieldRegistry(compile_validator=compile_validator)


class TestFieldName:
    def test_returns_name(self):
        assert field_name(FakeField("email")) == "email"

    @pytest.mark.parametrize("field", [None, FakeField(""), FakeField(None), object()])
    def test_missing_name(self, field):
        with pytest.raises(MissingNameError):
            field_name(field)


class TestRegister:
    def test_register_and_lookup(self, registry):
        field = FakeField("email", "a@b.com")
        assert registry.register(field) == "email"
        assert "email" in registry
        assert registry.get("email") is field
        assert registry.get_updater("email") == field.update
        assert registry.get_value("email") == "a@b.com"
        assert registry.is_registered(field)

    def test_compiles_rule_map(self, registry, compile_validator):
        field = FakeField("email", validations={"required": True})
        registry.register(field)
        compile_validator.assert_called_once_with(field, {"required": True})
        assert registry.get_validator("email") == "validator:email"

    def test_function_validator_not_compiled(self, registry, compile_validator):
        registry.register(FakeField("email", validations=lambda v, c, f: True))
        compile_validator.assert_not_called()
        assert registry.get_validator("email") is None

    def test_missing_name_rejected(self, registry):
        with pytest.raises(MissingNameError):
            registry.register(FakeField(""))
        assert len(registry) == 0

    def test_rename_replaces_old_entry(self, registry):
        field = FakeField("first")
        registry.register(field)
        field.name = "second"
        registry.register(field)
        assert registry.names() == ["second"]
        assert registry.find_name(field) == "second"

    def test_reregister_same_instance(self, registry):
        field = FakeField("email")
        registry.register(field)
        registry.register(field)
        assert registry.names() == ["email"]

    def test_duplicate_replace(self, registry, caplog):
        first, second = FakeField("email", 1), FakeField("email", 2)
        registry.register(first)
        registry.register(second)
        assert registry.get("email") is second
        assert not registry.is_registered(first)
        assert "registered twice" in caplog.text

    def test_duplicate_reject(self, compile_validator):
        registry = FieldRegistry(compile_validator, duplicate_policy=DuplicatePolicy.REJECT)
        first = FakeField("email")
        registry.register(first)
        with pytest.raises(DuplicateNameError) as exc_info:
            registry.register(FakeField("email"))
        assert exc_info.value.name == "email"
        assert registry.get("email") is first

    def test_rejected_rename_keeps_registration(self, compile_validator):
        registry = FieldRegistry(compile_validator, duplicate_policy=DuplicatePolicy.REJECT)
        renamed, holder = FakeField("a", validations={"required": True}), FakeField("b")
        registry.register(renamed)
        registry.register(holder)

        renamed.name = "b"
        with pytest.raises(DuplicateNameError):
            registry.register(renamed)

        assert registry.names() == ["a", "b"]
        assert registry.find_name(renamed) == "a"
        assert registry.get("b") is holder
        assert registry.get_validator("a") == "validator:a"


class TestUnregister:
    def test_unregister(self, registry):
        field = FakeField("email", validations={"required": True})
        registry.register(field)
        assert registry.unregister(field) is True
        assert "email" not in registry
        assert registry.get_validator("email") is None
        assert registry.get_updater("email") is None

    def test_unregister_unknown_is_noop(self, registry):
        assert registry.unregister(FakeField("nobody")) is False

    def test_unregister_without_name(self, registry):
        with pytest.raises(MissingNameError):
            registry.unregister(FakeField(None))


class TestValues:
    def test_get_value_unknown(self, registry):
        assert registry.get_value("missing") is None

    def test_get_value_duplicate_storage(self, registry):
        registry._fields["email"] = [FakeField("email"), FakeField("email")]
        with pytest.raises(DuplicateNameError):
            registry.get_value("email")

    def test_get_values_nests_dotted_names(self, registry):
        registry.register(FakeField("email", "a@b.com"))
        registry.register(FakeField("address.city", "Oslo"))
        registry.register(FakeField("address.zip", "0150"))
        registry.register(FakeField("phones[0]", "555"))
        assert registry.get_values() == {
            "email": "a@b.com",
            "address": {"city": "Oslo", "zip": "0150"},
            "phones": ["555"],
        }

    def test_names_is_copy(self, registry):
        registry.register(FakeField("a"))
        names = registry.names()
        names.append("b")
        assert registry.names() == ["a"]
