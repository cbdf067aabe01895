"""
Unit tests for action building and dispatch.
"""

import pytest
from nirirules.dispatcher import ActionDispatcher, build_actions, render_command
from nirirules.errors import ActionDispatchError, TransportError
from nirirules.protocol import (
    MoveWindowToFloating,
    MoveWindowToTiling,
    Reply,
    SetWindowHeight,
    SetWindowWidth,
    SizeChange,
    SpawnSh,
)
from nirirules.rules import Actions, Placement

ALL_ACTIONS = Actions(
    placement=Placement.FLOAT,
    column_width=SizeChange.parse("+10%"),
    row_height=SizeChange.parse("-50"),
    spawn="notify-send {id}",
)


@pytest.mark.unit
class TestRenderCommand:
    """Test spawn template substitution."""

    def test_all_placeholders(self, make_window):
        window = make_window(id=42, title="Bitwarden", app_id="librewolf", pid=99)

        command = render_command("{id} {title} {app_id} {pid}", window)

        assert command == "42 Bitwarden librewolf 99"

    def test_every_occurrence_replaced(self, make_window):
        window = make_window(id=7, title="t", app_id="a", pid=1)

        command = render_command("{id}{id} {title}/{title} {app_id}{app_id} {pid},{pid}", window)

        assert command == "77 t/t aa 1,1"

    def test_absent_fields_become_empty(self, make_window):
        window = make_window(id=5)

        command = render_command("[{title}] [{app_id}] [{pid}] [{id}]", window)

        assert command == "[] [] [] [5]"

    def test_replacement_is_literal(self, make_window):
        """Values are inserted verbatim and unknown braces are left alone."""
        window = make_window(id=1, title="$HOME \\1 .*", app_id="foot")

        command = render_command("{title} {other} {app_id}", window)

        assert command == "$HOME \\1 .* {other} foot"

    def test_placeholders_in_values_are_not_expanded(self, make_window):
        """A title that contains placeholders is inserted as the title."""
        window = make_window(id=7, title="see {pid} and {app_id}", app_id="foot", pid=99)

        assert render_command("{title}", window) == "see {pid} and {app_id}"
        assert render_command("{app_id}: {title} [{id}]", window) == (
            "foot: see {pid} and {app_id} [7]"
        )

    def test_app_id_containing_title_placeholder(self, make_window):
        window = make_window(id=1, title="real", app_id="{title}")

        assert render_command("{title} {app_id}", window) == "real {title}"

    def test_template_without_placeholders(self, make_window):
        assert render_command("true", make_window()) == "true"


@pytest.mark.unit
class TestBuildActions:
    """Test action ordering."""

    def test_order_with_all_fields(self, make_window):
        """Placement, column width, row height, then spawn."""
        window = make_window(id=42)

        actions = build_actions(window, ALL_ACTIONS)

        assert actions == [
            MoveWindowToFloating(id=42),
            SetWindowWidth(id=42, change=SizeChange.parse("+10%")),
            SetWindowHeight(id=42, change=SizeChange.parse("-50")),
            SpawnSh(command="notify-send 42"),
        ]

    def test_tile_placement(self, make_window):
        actions = build_actions(make_window(id=3), Actions(placement=Placement.TILE))

        assert actions == [MoveWindowToTiling(id=3)]

    def test_only_present_fields_emit(self, make_window):
        actions = build_actions(
            make_window(id=3),
            Actions(row_height=SizeChange.parse("400"), spawn="x"),
        )

        assert [type(a) for a in actions] == [SetWindowHeight, SpawnSh]

    def test_no_actions(self, make_window):
        assert build_actions(make_window(), Actions()) == []


@pytest.mark.unit
class TestActionDispatcher:
    """Test sending actions over a connection."""

    def test_sends_in_order(self, make_window, fake_connection):
        connection = fake_connection()
        dispatcher = ActionDispatcher(connection)

        sent = dispatcher.dispatch(make_window(id=42), ALL_ACTIONS)

        assert connection.sent == sent
        assert [type(a) for a in sent] == [
            MoveWindowToFloating,
            SetWindowWidth,
            SetWindowHeight,
            SpawnSh,
        ]

    def test_error_reply_aborts_remaining(self, make_window, fake_connection):
        """A rejected action stops the rest of the rule's actions."""
        connection = fake_connection(
            [Reply(ok=True, response="Handled"), Reply(ok=False, error="no such window")]
        )
        dispatcher = ActionDispatcher(connection)

        with pytest.raises(ActionDispatchError) as excinfo:
            dispatcher.dispatch(make_window(id=42), ALL_ACTIONS)

        assert len(connection.sent) == 2
        assert excinfo.value.action == SetWindowWidth(
            id=42, change=SizeChange.parse("+10%")
        )
        assert excinfo.value.reason == "no such window"
        assert excinfo.value.window_id == 42

    def test_transport_error_is_dispatch_error(self, make_window, fake_connection):
        connection = fake_connection([TransportError("No reply within 5.0s")])
        dispatcher = ActionDispatcher(connection)

        with pytest.raises(ActionDispatchError, match="No reply"):
            dispatcher.dispatch(make_window(id=1), ALL_ACTIONS)

        assert len(connection.sent) == 1

    def test_unexpected_ok_reply_is_failure(self, make_window, fake_connection):
        connection = fake_connection([Reply(ok=True, response={"Version": "1"})])
        dispatcher = ActionDispatcher(connection)

        with pytest.raises(ActionDispatchError, match="unexpected reply"):
            dispatcher.dispatch(make_window(id=1), Actions(placement=Placement.FLOAT))
