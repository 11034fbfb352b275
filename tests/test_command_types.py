"""Tests for the command model and its Discord declarations."""

from types import SimpleNamespace

import discord
import pytest
from structlog.testing import capture_logs

from glimmer.command_types import (
    CategoryCommand,
    CommandKind,
    MessageContextMenuCommand,
    NormalCommand,
    SubCommand,
    UserContextMenuCommand,
)
from glimmer.declarations import CommandType, OptionKind
from glimmer.diagnostics import UNKNOWN_SUBCOMMAND
from glimmer.exceptions import CommandNameError, InvalidOptionError, ModuleConfigurationError
from glimmer.options import IntegerOption, StringOption, UserOption


async def _noop(interaction):
    pass


def _interaction(name, subcommand=None):
    options = []
    if subcommand is not None:
        options.append({"type": 1, "name": subcommand, "options": []})
    return SimpleNamespace(
        type=discord.InteractionType.application_command,
        data={"type": 1, "name": name, "options": options},
        calls=[],
    )


def _normal(**overrides):
    params = dict(
        description="Bans a member",
        handler=_noop,
        options=[
            UserOption(name="member", description="Who to ban", required=True),
            StringOption(name="reason", description="Why"),
        ],
        name_localizations={"fr": "bannir"},
        description_localizations={"fr": "Bannit un membre"},
        member_permissions=discord.Permissions(ban_members=True),
    )
    params.update(overrides)
    return NormalCommand(**params)


# -------------------------------------------------------------------
# Names
# -------------------------------------------------------------------

class TestNames:

    def test_name_empty_until_bound(self):
        command = _normal()
        assert command.name == ""
        command.bind_name("ban")
        assert command.name == "ban"

    def test_rebinding_before_lock_replaces_name(self):
        command = _normal()
        command.bind_name("other")
        command.bind_name("ban")
        assert command.name == "ban"

    def test_locked_name_is_immutable(self):
        command = _normal()
        command.bind_name("ban")
        command.lock_name()
        command.bind_name("ban")  # same name is fine
        with pytest.raises(CommandNameError):
            command.bind_name("kick")
        assert command.name == "ban"

    def test_lock_requires_a_name(self):
        with pytest.raises(CommandNameError):
            _normal().lock_name()

    @pytest.mark.parametrize("bad", ["", "Ban", "has space", "x" * 33])
    def test_invalid_slash_names_rejected(self, bad):
        with pytest.raises(CommandNameError):
            _normal().bind_name(bad)

    def test_context_menu_names_allow_spaces_and_case(self):
        command = MessageContextMenuCommand(handler=_noop)
        command.bind_name("Report Message")
        assert command.name == "Report Message"


# -------------------------------------------------------------------
# Declarations
# -------------------------------------------------------------------

class TestDeclarations:

    def test_normal_command_declaration(self):
        command = _normal()
        command.bind_name("ban")
        payload = command.to_declaration().to_payload()

        assert payload["type"] == CommandType.CHAT_INPUT
        assert payload["name"] == "ban"
        assert payload["name_localizations"] == {"fr": "bannir"}
        assert payload["description"] == "Bans a member"
        assert payload["description_localizations"] == {"fr": "Bannit un membre"}
        assert payload["default_member_permissions"] == str(discord.Permissions(ban_members=True).value)
        assert [(o["type"], o["name"]) for o in payload["options"]] == [
            (OptionKind.USER, "member"),
            (OptionKind.STRING, "reason"),
        ]
        assert payload["options"][0]["required"] is True

    def test_no_permissions_means_field_omitted(self):
        command = NormalCommand(description="Ping", handler=_noop)
        command.bind_name("ping")
        payload = command.to_declaration().to_payload()
        assert "default_member_permissions" not in payload
        assert payload["options"] == []

    def test_int_permissions_accepted(self):
        command = NormalCommand(description="Ping", handler=_noop, member_permissions=8)
        assert command.member_permissions == 8

    def test_bool_permissions_rejected(self):
        with pytest.raises(TypeError):
            NormalCommand(description="Ping", handler=_noop, member_permissions=True)

    def test_declaration_is_pure(self):
        command = _normal()
        command.bind_name("ban")
        assert command.to_declaration() == command.to_declaration()

    def test_subcommand_declaration_is_subcommand_option(self):
        sub = SubCommand(
            description="Kick a member",
            handler=_noop,
            options=[IntegerOption(name="days", description="Days", min_value=0, max_value=7)],
        )
        sub.bind_name("kick")
        payload = sub.to_declaration().to_payload()
        assert payload["type"] == OptionKind.SUB_COMMAND
        assert payload["name"] == "kick"
        assert payload["options"][0]["min_value"] == 0
        assert payload["options"][0]["max_value"] == 7

    def test_category_embeds_subcommands_in_name_order(self):
        category = CategoryCommand(description="Moderation", member_permissions=8)
        category.bind_name("mod")
        category.attach_subcommands({
            "kick": SubCommand(description="Kick", handler=_noop),
            "ban": SubCommand(description="Ban", handler=_noop),
        })
        payload = category.to_declaration().to_payload()
        assert [o["name"] for o in payload["options"]] == ["ban", "kick"]
        assert all(o["type"] == OptionKind.SUB_COMMAND for o in payload["options"])
        assert payload["default_member_permissions"] == "8"

    @pytest.mark.parametrize(
        "cls, command_type",
        [(UserContextMenuCommand, CommandType.USER), (MessageContextMenuCommand, CommandType.MESSAGE)],
    )
    def test_context_menu_declaration(self, cls, command_type):
        command = cls(handler=_noop, member_permissions=32, name_localizations={"de": "Melden"})
        command.bind_name("Report")
        payload = command.to_declaration().to_payload()
        assert payload == {
            "type": command_type,
            "name": "Report",
            "name_localizations": {"de": "Melden"},
            "default_member_permissions": "32",
        }

    def test_kinds_are_tagged(self):
        assert NormalCommand.kind == CommandKind.NORMAL
        assert SubCommand.kind == CommandKind.SUB
        assert CategoryCommand.kind == CommandKind.CATEGORY
        assert UserContextMenuCommand.kind == CommandKind.USER_MENU
        assert MessageContextMenuCommand.kind == CommandKind.MESSAGE_MENU


# -------------------------------------------------------------------
# Validation
# -------------------------------------------------------------------

class TestValidation:

    def test_unknown_option_type_fails_fast(self):
        with pytest.raises(InvalidOptionError):
            NormalCommand(description="Bad", handler=_noop, options=[{"name": "x"}])

    def test_non_callable_handler_rejected(self):
        with pytest.raises(TypeError):
            NormalCommand(description="Bad", handler="not callable")

    def test_description_length_checked(self):
        with pytest.raises(ValueError):
            NormalCommand(description="", handler=_noop)
        with pytest.raises(ValueError):
            SubCommand(description="x" * 101, handler=_noop)


# -------------------------------------------------------------------
# Conversions
# -------------------------------------------------------------------

class TestConversions:

    def test_round_trip_keeps_fields_but_not_permissions(self):
        original = _normal()
        original.bind_name("ban")

        sub = original.to_sub_command()
        assert isinstance(sub, SubCommand)
        assert not hasattr(sub, "member_permissions")

        back = sub.to_normal_command()
        assert back.name == "ban"
        assert back.description == original.description
        assert back.name_localizations == original.name_localizations
        assert back.description_localizations == original.description_localizations
        assert back.options == original.options
        assert back.handler is original.handler
        # Permissions are not restored automatically
        assert back.member_permissions is None
        assert original.member_permissions is not None

    def test_permissions_supplied_explicitly(self):
        original = _normal()
        original.bind_name("ban")
        back = original.to_sub_command().to_normal_command(discord.Permissions(kick_members=True))
        assert back.member_permissions == discord.Permissions(kick_members=True).value

    def test_conversion_of_unnamed_command_stays_unnamed(self):
        assert _normal().to_sub_command().name == ""


# -------------------------------------------------------------------
# Category routing
# -------------------------------------------------------------------

class TestCategory:

    def _category(self):
        async def ban(interaction):
            interaction.calls.append("ban")

        category = CategoryCommand(description="Moderation")
        category.bind_name("mod")
        category.attach_subcommands({"ban": SubCommand(description="Ban", handler=ban)})
        return category

    @pytest.mark.asyncio
    async def test_handler_delegates_to_selected_subcommand(self):
        category = self._category()
        interaction = _interaction("mod", "ban")
        await category.handler(interaction)
        assert interaction.calls == ["ban"]

    @pytest.mark.asyncio
    async def test_unknown_subcommand_is_a_noop(self):
        category = self._category()
        interaction = _interaction("mod", "kick")
        await category.handler(interaction)
        assert interaction.calls == []

    @pytest.mark.asyncio
    async def test_unknown_subcommand_is_logged_by_default(self):
        category = self._category()
        with capture_logs() as logs:
            await category.handler(_interaction("mod", "kick"))
        assert [entry["event"] for entry in logs] == [UNKNOWN_SUBCOMMAND]
        assert logs[0]["subcommand"] == "kick"

    @pytest.mark.asyncio
    async def test_unknown_subcommand_goes_to_configured_sink(self):
        category = self._category()
        reported = []
        category.report_diagnostics_to(reported.append)
        with capture_logs() as logs:
            await category.handler(_interaction("mod", "kick"))
        assert logs == []
        assert [d.code for d in reported] == [UNKNOWN_SUBCOMMAND]
        assert reported[0].fields == {"command": "mod", "subcommand": "kick"}

    def test_check_subcommands_changes_nothing(self):
        category = CategoryCommand(description="Moderation")
        ban = SubCommand(description="Ban", handler=_noop)
        category.check_subcommands({"ban": ban})
        assert not category.finalized
        assert ban.name == ""

    def test_rejected_attach_leaves_subcommands_unnamed(self):
        category = CategoryCommand(description="Moderation")
        ban = SubCommand(description="Ban", handler=_noop)
        with pytest.raises(ModuleConfigurationError, match="two names"):
            category.attach_subcommands({"ban": ban, "kick": ban})
        assert ban.name == ""
        category.attach_subcommands({"ban": ban})
        assert category.finalized

    def test_subcommands_are_read_only(self):
        category = self._category()
        with pytest.raises(TypeError):
            category.subcommands["kick"] = SubCommand(description="Kick", handler=_noop)

    def test_attach_only_once(self):
        category = self._category()
        with pytest.raises(ModuleConfigurationError):
            category.attach_subcommands({})

    def test_attach_rejects_non_subcommands(self):
        category = CategoryCommand(description="Moderation")
        category.bind_name("mod")
        with pytest.raises(ModuleConfigurationError, match="expected SubCommand"):
            category.attach_subcommands({"ban": NormalCommand(description="Ban", handler=_noop)})

    def test_attached_subcommands_get_locked_names(self):
        category = self._category()
        sub = category.subcommands["ban"]
        assert sub.name == "ban"
        assert sub.name_locked
