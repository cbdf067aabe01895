"""
Unit tests for the rule engine driven through the event bus.
"""

import pytest
from pubsub import pub

from nirirules import topics
from nirirules.dispatcher import ActionDispatcher
from nirirules.protocol import MoveWindowToFloating, Reply, SpawnSh
from nirirules.rule_engine import RuleEngine
from nirirules.rules import Actions, Matcher, Placement, Rule, RuleSet

BITWARDEN = Rule(
    includes=(Matcher.compile(app_id="^librewolf$", title=".*Bitwarden.*"),),
    actions=Actions(placement=Placement.FLOAT),
)


class FailureRecorder:
    """Collects ACTION_FAILED messages."""

    def __init__(self):
        self.failures = []
        pub.subscribe(self.on_action_failed, topics.ACTION_FAILED)

    def on_action_failed(self, rule_index, window, error):
        self.failures.append((rule_index, window.id, error))


class MatchRecorder:
    """Collects RULE_MATCHED messages."""

    def __init__(self):
        self.matches = []
        pub.subscribe(self.on_rule_matched, topics.RULE_MATCHED)

    def on_rule_matched(self, rule_index, window):
        self.matches.append((rule_index, window.id))


@pytest.mark.unit
class TestRuleEngine:
    """Test rule evaluation and dedup across window events."""

    @pytest.fixture
    def engine_factory(self, fake_connection):
        def factory(rules, replies=None):
            connection = fake_connection(replies)
            engine = RuleEngine(
                bus=pub, rules=RuleSet(rules), dispatcher=ActionDispatcher(connection)
            )
            return engine, connection

        return factory

    def test_bitwarden_scenario(self, engine_factory, make_window):
        """Float once, stay quiet on repeats, float again after a close."""
        engine, connection = engine_factory([BITWARDEN])
        window = make_window(id=42, app_id="librewolf", title="Bitwarden - librewolf")

        pub.sendMessage(topics.WINDOW_OPENED_OR_CHANGED, window=window)
        assert connection.sent == [MoveWindowToFloating(id=42)]

        pub.sendMessage(topics.WINDOW_OPENED_OR_CHANGED, window=window)
        assert connection.sent == [MoveWindowToFloating(id=42)]

        pub.sendMessage(topics.WINDOW_CLOSED, window_id=42)
        pub.sendMessage(topics.WINDOW_OPENED_OR_CHANGED, window=window)
        assert connection.sent == [MoveWindowToFloating(id=42)] * 2

    def test_non_matching_window_sends_nothing(self, engine_factory, make_window):
        engine, connection = engine_factory([BITWARDEN])

        pub.sendMessage(
            topics.WINDOW_OPENED_OR_CHANGED,
            window=make_window(id=1, app_id="librewolf", title="Inbox"),
        )

        assert connection.sent == []
        assert len(engine.tracker) == 0

    def test_window_matching_later_fires_then(self, engine_factory, make_window):
        """A title set after opening still triggers the rule."""
        engine, connection = engine_factory([BITWARDEN])

        pub.sendMessage(
            topics.WINDOW_OPENED_OR_CHANGED,
            window=make_window(id=42, app_id="librewolf", title=""),
        )
        pub.sendMessage(
            topics.WINDOW_OPENED_OR_CHANGED,
            window=make_window(id=42, app_id="librewolf", title="Bitwarden"),
        )

        assert connection.sent == [MoveWindowToFloating(id=42)]

    def test_windows_changed_evaluates_each_window(self, engine_factory, make_window):
        engine, connection = engine_factory([BITWARDEN])
        windows = (
            make_window(id=1, app_id="librewolf", title="Bitwarden"),
            make_window(id=2, app_id="foot", title="Bitwarden"),
            make_window(id=3, app_id="librewolf", title="Bitwarden - Vault"),
        )

        pub.sendMessage(topics.WINDOWS_CHANGED, windows=windows)
        pub.sendMessage(topics.WINDOWS_CHANGED, windows=windows)

        assert connection.sent == [MoveWindowToFloating(id=1), MoveWindowToFloating(id=3)]

    def test_all_matching_rules_fire(self, engine_factory, make_window):
        """Rules are not first-match-wins."""
        notify = Rule(includes=(Matcher(),), actions=Actions(spawn="notify {id}"))
        engine, connection = engine_factory([BITWARDEN, notify])
        matches = MatchRecorder()

        fired = engine.process_window(
            make_window(id=42, app_id="librewolf", title="Bitwarden")
        )

        assert fired == 2
        assert matches.matches == [(0, 42), (1, 42)]
        assert connection.sent == [MoveWindowToFloating(id=42), SpawnSh("notify 42")]

    def test_close_of_unmatched_window_is_harmless(self, engine_factory):
        engine, connection = engine_factory([BITWARDEN])

        pub.sendMessage(topics.WINDOW_CLOSED, window_id=1234)

        assert len(engine.tracker) == 0

    def test_close_forgets_across_rules(self, engine_factory, make_window):
        catch_all = Rule(includes=(Matcher(),), actions=Actions(spawn="x"))
        engine, connection = engine_factory([catch_all, catch_all])

        engine.process_window(make_window(id=9))
        assert len(engine.tracker) == 2

        pub.sendMessage(topics.WINDOW_CLOSED, window_id=9)
        assert len(engine.tracker) == 0

    def test_failure_continues_with_next_rule(self, engine_factory, make_window):
        """A rejected action aborts that rule only; later rules still run."""
        two_step = Rule(
            includes=(Matcher(),),
            actions=Actions(placement=Placement.FLOAT, spawn="never sent"),
        )
        notify = Rule(includes=(Matcher(),), actions=Actions(spawn="notify {id}"))
        engine, connection = engine_factory(
            [two_step, notify], replies=[Reply(ok=False, error="denied")]
        )
        failures = FailureRecorder()

        engine.process_window(make_window(id=5))

        assert connection.sent == [MoveWindowToFloating(id=5), SpawnSh("notify 5")]
        assert [(index, window_id) for index, window_id, _ in failures.failures] == [(0, 5)]
        assert "denied" in str(failures.failures[0][2])

    def test_failed_rule_is_not_retried(self, engine_factory, make_window):
        """A failed match still counts as fired for that window."""
        engine, connection = engine_factory(
            [BITWARDEN], replies=[Reply(ok=False, error="denied")]
        )
        window = make_window(id=42, app_id="librewolf", title="Bitwarden")

        engine.process_window(window)
        engine.process_window(window)

        assert connection.sent == [MoveWindowToFloating(id=42)]
