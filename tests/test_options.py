"""Tests for option models and their declarations."""

import pytest
from pydantic import ValidationError

from glimmer.declarations import OptionChoice, OptionKind
from glimmer.exceptions import InvalidOptionError
from glimmer.options import (
    AttachmentOption,
    BooleanOption,
    ChannelOption,
    CommandOption,
    IntegerOption,
    MentionableOption,
    NumberOption,
    RoleOption,
    StringOption,
    UserOption,
    option_declaration,
)


@pytest.mark.parametrize(
    "cls, kind",
    [
        (BooleanOption, OptionKind.BOOLEAN),
        (UserOption, OptionKind.USER),
        (ChannelOption, OptionKind.CHANNEL),
        (RoleOption, OptionKind.ROLE),
        (AttachmentOption, OptionKind.ATTACHMENT),
        (MentionableOption, OptionKind.MENTIONABLE),
        (StringOption, OptionKind.STRING),
        (IntegerOption, OptionKind.INTEGER),
        (NumberOption, OptionKind.NUMBER),
    ],
)
def test_each_option_keeps_its_kind(cls, kind):
    declaration = option_declaration(cls(name="value", description="A value"))
    assert declaration.type == kind
    assert declaration.to_payload()["type"] == int(kind)


def test_base_option_is_not_a_kind():
    with pytest.raises(InvalidOptionError):
        option_declaration(CommandOption(name="value", description="A value"))


def test_foreign_object_rejected():
    with pytest.raises(InvalidOptionError, match="not a supported command option"):
        option_declaration(object())


def test_string_constraints_and_choices():
    option = StringOption(
        name="color",
        description="Pick a color",
        required=True,
        min_length=2,
        max_length=10,
        choices=[OptionChoice(name="Red", value="red"), OptionChoice(name="Blue", value="blue")],
    )
    payload = option_declaration(option).to_payload()
    assert payload["min_length"] == 2
    assert payload["max_length"] == 10
    assert payload["choices"] == [{"name": "Red", "value": "red"}, {"name": "Blue", "value": "blue"}]
    assert "min_value" not in payload


def test_channel_types_carried():
    payload = option_declaration(
        ChannelOption(name="where", description="Channel", channel_types=[0, 5])
    ).to_payload()
    assert payload["channel_types"] == [0, 5]


def test_number_bounds_keep_floats():
    payload = option_declaration(
        NumberOption(name="ratio", description="Ratio", min_value=0.5, max_value=2.5)
    ).to_payload()
    assert payload["min_value"] == 0.5
    assert payload["max_value"] == 2.5


@pytest.mark.parametrize("bad", ["Upper", "with space", "", "x" * 33])
def test_invalid_option_names(bad):
    with pytest.raises(ValidationError):
        StringOption(name=bad, description="Bad")


def test_unknown_fields_rejected():
    with pytest.raises(ValidationError):
        BooleanOption(name="flag", description="Flag", min_value=1)
