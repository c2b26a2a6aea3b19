"""
Unit tests for the IRCConnection lifecycle state machine.
"""

import asyncio
import logging
from unittest.mock import patch

import pytest

from tests.fixtures.chat_doubles import (
    WELCOME,
    BlockingTransport,
    FakeCredentialSource,
    FakeTransport,
    RecordingDispatcher,
    tester_credential,
)
from twitch_irc.errors.internal import MissingCredentialError, OAuthError, TransportError
from twitch_irc.irc.connection import ConnectionAttempt, IRCConnection
from twitch_irc.irc.membership import ChannelMembership
from twitch_irc.irc.models import Channel, ConnectionState, Credential

HANDSHAKE = [
    "CAP REQ :twitch.tv/membership",
    "CAP REQ :twitch.tv/tags",
    "CAP REQ :twitch.tv/commands",
    "PASS oauth:abc123",
    "NICK tester",
]

FOO = Channel(id="1", name="foo")
BAR = Channel(id="2", name="bar")


class TestIRCConnection:
    """Test class for IRCConnection state transitions."""

    def setup_method(self):
        self.transport = FakeTransport()
        self.credentials = FakeCredentialSource(tester_credential())
        self.dispatcher = RecordingDispatcher()
        self.context = object()
        self.connection = IRCConnection(
            self.transport,
            self.credentials,
            self.dispatcher,
            context=self.context,
        )
        self.transitions: list[tuple[ConnectionState, ConnectionState]] = []
        self.connection.add_state_listener(
            lambda old, new: self.transitions.append((old, new))
        )

    async def _connected(self):
        await self.connection.connect()
        await self.transport.open()
        await self.transport.receive(WELCOME)
        assert self.connection.state is ConnectionState.CONNECTED
        self.transport.sent.clear()

    def test_initial_state(self):
        assert self.connection.state is ConnectionState.DISCONNECTED
        assert self.connection.username is None
        assert self.transport.listener is self.connection

    @pytest.mark.asyncio
    async def test_connect_starts_attempt(self):
        assert await self.connection.connect() is True
        assert self.connection.state is ConnectionState.CONNECTING
        assert self.transport.connect_calls == 1
        assert self.connection.attempt_count == 1

    @pytest.mark.asyncio
    async def test_connect_ignored_unless_disconnected(self):
        await self.connection.connect()
        assert await self.connection.connect() is False
        assert self.transport.connect_calls == 1

    @pytest.mark.asyncio
    async def test_handshake_sends_caps_then_login(self):
        await self.connection.connect()
        await self.transport.open()
        assert self.transport.sent == HANDSHAKE
        assert self.connection.username == "tester"
        assert self.credentials.calls == 1

    @pytest.mark.asyncio
    async def test_token_with_oauth_prefix_not_doubled(self):
        self.credentials.credential = Credential(token="oauth:abc123", username="tester")
        await self.connection.connect()
        await self.transport.open()
        assert "PASS oauth:abc123" in self.transport.sent

    @pytest.mark.asyncio
    async def test_handshake_rejoins_every_member_before_connected(self):
        self.connection.membership.add(FOO)
        self.connection.membership.add(BAR)
        await self.connection.connect()
        await self.transport.open()
        assert self.transport.sent == HANDSHAKE + ["JOIN #foo", "JOIN #bar"]
        assert self.connection.state is ConnectionState.CONNECTING

    @pytest.mark.asyncio
    async def test_welcome_moves_to_connected(self):
        await self.connection.connect()
        await self.transport.open()
        await self.transport.receive(WELCOME)
        assert self.connection.state is ConnectionState.CONNECTED
        assert self.transitions == [
            (ConnectionState.DISCONNECTED, ConnectionState.CONNECTING),
            (ConnectionState.CONNECTING, ConnectionState.CONNECTED),
        ]
        assert self.dispatcher.lines == []

    @pytest.mark.asyncio
    async def test_welcome_for_other_user_does_not_connect(self):
        await self.connection.connect()
        await self.transport.open()
        await self.transport.receive(":tmi.twitch.tv 001 someoneelse :Welcome, GLHF!")
        assert self.connection.state is ConnectionState.CONNECTING

    @pytest.mark.asyncio
    async def test_lines_before_welcome_are_not_dispatched(self):
        await self.connection.connect()
        await self.transport.open()
        await self.transport.receive(":tmi.twitch.tv 002 tester :Your host is tmi.twitch.tv")
        assert self.dispatcher.lines == []
        assert self.connection.state is ConnectionState.CONNECTING

    @pytest.mark.asyncio
    async def test_missing_credential_abandons_attempt(self):
        self.credentials.credential = None
        self.connection.membership.add(FOO)
        await self.connection.connect()
        await self.transport.open()

        assert self.connection.state is ConnectionState.DISCONNECTING
        assert self.transport.disconnect_calls == 1
        assert isinstance(self.connection.last_error, MissingCredentialError)
        assert not any(line.startswith(("PASS", "NICK", "JOIN")) for line in self.transport.sent)

        await self.transport.close(server_initiated=False)
        assert self.connection.state is ConnectionState.DISCONNECTED
        assert self.connection._scheduled is None
        assert self.transport.connect_calls == 1

    @pytest.mark.asyncio
    async def test_credential_source_failure_treated_as_missing(self):
        async def broken():
            raise RuntimeError("vault offline")

        self.credentials.get_chat_credential = broken
        await self.connection.connect()
        await self.transport.open()
        assert self.connection.state is ConnectionState.DISCONNECTING
        assert isinstance(self.connection.last_error, MissingCredentialError)

    @pytest.mark.asyncio
    async def test_auth_failure_notice_stops_without_reconnect(self):
        await self.connection.connect()
        await self.transport.open()
        await self.transport.receive(":tmi.twitch.tv NOTICE * :Login authentication failed")

        assert self.connection.state is ConnectionState.DISCONNECTING
        assert isinstance(self.connection.last_error, OAuthError)
        assert self.transport.disconnect_calls == 1

        await self.transport.close(server_initiated=True)
        assert self.connection.state is ConnectionState.DISCONNECTED
        assert self.connection.reconnect_count == 0

    @pytest.mark.asyncio
    async def test_transport_connect_failure_returns_to_disconnected(self):
        transport = FakeTransport(fail_connect=True)
        connection = IRCConnection(transport, self.credentials, self.dispatcher)
        assert await connection.connect() is True
        assert connection.state is ConnectionState.DISCONNECTED
        assert isinstance(connection.last_error, TransportError)
        assert transport.connect_calls == 1

    @pytest.mark.asyncio
    async def test_ping_answered_and_never_dispatched(self):
        await self._connected()
        await self.transport.receive("PING :tmi.twitch.tv")
        assert self.transport.sent == ["PONG :tmi.twitch.tv"]
        assert self.dispatcher.lines == []
        assert self.connection.last_ping_from_server > 0

    @pytest.mark.asyncio
    async def test_ping_during_handshake_is_answered(self):
        await self.connection.connect()
        await self.transport.open()
        self.transport.sent.clear()
        await self.transport.receive("PING :tmi.twitch.tv")
        assert self.transport.sent == ["PONG :tmi.twitch.tv"]

    @pytest.mark.asyncio
    async def test_other_lines_dispatched_exactly_once_with_context(self):
        await self._connected()
        line = ":alice!alice@alice.tmi.twitch.tv PRIVMSG #foo :hi"
        await self.transport.receive(line)
        assert self.dispatcher.lines == [(line, self.context)]

    @pytest.mark.asyncio
    async def test_chat_text_mentioning_ping_is_dispatched_not_answered(self):
        await self._connected()
        line = ":alice!alice@alice.tmi.twitch.tv PRIVMSG #foo :PING me later"
        await self.transport.receive(line)
        assert self.transport.sent == []
        assert self.dispatcher.lines == [(line, self.context)]

    @pytest.mark.asyncio
    async def test_duplicate_welcome_is_consumed(self):
        await self._connected()
        await self.transport.receive(WELCOME)
        assert self.dispatcher.lines == []

    @pytest.mark.asyncio
    async def test_dispatcher_failure_does_not_break_connection(self):
        class Exploding:
            async def dispatch(self, raw_line, context=None):
                raise ValueError("boom")

        connection = IRCConnection(self.transport, self.credentials, Exploding())
        await connection.connect()
        await self.transport.open()
        await self.transport.receive(WELCOME)
        await self.transport.receive(":a!a@a PRIVMSG #foo :x")
        assert connection.state is ConnectionState.CONNECTED

    @pytest.mark.asyncio
    async def test_unexpected_close_schedules_reconnect(self):
        self.connection.membership.add(FOO)
        await self._connected()
        await self.transport.close(server_initiated=True)

        assert self.connection.state is ConnectionState.RECONNECTING
        assert self.connection.reconnect_count == 1

        await self.connection.wait_scheduled()
        assert self.connection.state is ConnectionState.CONNECTING
        assert self.transport.connect_calls == 2
        assert [new for _, new in self.transitions] == [
            ConnectionState.CONNECTING,
            ConnectionState.CONNECTED,
            ConnectionState.RECONNECTING,
            ConnectionState.CONNECTING,
        ]

        await self.transport.open()
        assert self.transport.sent == HANDSHAKE + ["JOIN #foo"]
        await self.transport.receive(WELCOME)
        assert self.connection.state is ConnectionState.CONNECTED

    @pytest.mark.asyncio
    async def test_close_while_connecting_also_reconnects(self):
        await self.connection.connect()
        await self.transport.close(server_initiated=True)
        assert self.connection.state is ConnectionState.RECONNECTING
        await self.connection.wait_scheduled()
        assert self.transport.connect_calls == 2

    @pytest.mark.asyncio
    async def test_disconnect_then_close_ends_disconnected(self):
        await self._connected()
        assert await self.connection.disconnect() is True
        assert self.connection.state is ConnectionState.DISCONNECTING
        assert self.transport.disconnect_calls == 1

        await self.transport.close(server_initiated=False)
        assert self.connection.state is ConnectionState.DISCONNECTED
        await self.connection.wait_scheduled()
        assert self.transport.connect_calls == 1
        assert self.connection.reconnect_count == 0

    @pytest.mark.asyncio
    async def test_disconnect_ignored_unless_connected(self):
        assert await self.connection.disconnect() is False
        await self.connection.connect()
        assert await self.connection.disconnect() is False
        assert self.transport.disconnect_calls == 0

    @pytest.mark.asyncio
    async def test_close_when_disconnected_is_ignored(self):
        await self.transport.close(server_initiated=True)
        assert self.connection.state is ConnectionState.DISCONNECTED
        assert self.transitions == []

    @pytest.mark.asyncio
    async def test_reconnect_defers_connect_until_closed(self):
        await self._connected()
        await self.connection.reconnect()
        assert self.connection.state is ConnectionState.DISCONNECTING
        assert self.transport.connect_calls == 1

        await self.transport.close(server_initiated=False)
        await self.connection.wait_scheduled()
        assert self.connection.state is ConnectionState.CONNECTING
        assert self.transport.connect_calls == 2

    @pytest.mark.asyncio
    async def test_reconnect_from_disconnected_connects(self):
        await self.connection.reconnect()
        assert self.connection.state is ConnectionState.CONNECTING
        assert self.transport.connect_calls == 1

    @pytest.mark.asyncio
    async def test_shutdown_cancels_scheduled_reconnect(self):
        await self._connected()
        await self.transport.close(server_initiated=True)
        assert self.connection.state is ConnectionState.RECONNECTING

        await self.connection.shutdown()
        assert self.connection.state is ConnectionState.DISCONNECTED
        await asyncio.sleep(0)
        assert self.transport.connect_calls == 1

    @pytest.mark.asyncio
    async def test_shutdown_while_connecting_closes_transport(self):
        await self.connection.connect()
        await self.connection.shutdown()
        assert self.connection.state is ConnectionState.DISCONNECTING
        assert self.transport.disconnect_calls == 1

        # Transport finishes opening after shutdown was requested
        await self.transport.open()
        assert self.transport.sent == []
        assert self.transport.disconnect_calls == 2
        await self.transport.close(server_initiated=False)
        assert self.connection.state is ConnectionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_shutdown_when_disconnected_is_noop(self):
        await self.connection.shutdown()
        assert self.connection.state is ConnectionState.DISCONNECTED
        assert self.transport.disconnect_calls == 0

    @pytest.mark.asyncio
    async def test_send_while_disconnected_is_dropped(self):
        assert await self.connection.send_command("privmsg", "#foo", ":hi") is False
        assert self.transport.sent == []

    @pytest.mark.asyncio
    async def test_send_failure_reported_not_raised(self):
        await self._connected()
        self.transport.fail_send = True
        assert await self.connection.send_command("privmsg", "#foo", ":hi") is False
        assert self.connection.state is ConnectionState.CONNECTED

    @pytest.mark.asyncio
    async def test_state_listener_errors_are_contained(self):
        def broken(old, new):
            raise RuntimeError("listener bug")

        self.connection.add_state_listener(broken)
        await self.connection.connect()
        assert self.connection.state is ConnectionState.CONNECTING
        self.connection.remove_state_listener(broken)

    @pytest.mark.asyncio
    async def test_connection_stats(self):
        await self._connected()
        stats = self.connection.get_connection_stats()
        assert stats["state"] == "CONNECTED"
        assert stats["username"] == "tester"
        assert stats["attempts"] == 1
        assert stats["reconnects"] == 0
        assert stats["last_error"] is None


class TestMembershipThroughConnection:
    def setup_method(self):
        self.transport = FakeTransport()
        self.connection = IRCConnection(
            self.transport,
            FakeCredentialSource(tester_credential()),
            RecordingDispatcher(),
            membership=ChannelMembership(),
        )

    async def _connected(self):
        await self.connection.connect()
        await self.transport.open()
        await self.transport.receive(WELCOME)
        self.transport.sent.clear()

    @pytest.mark.asyncio
    async def test_duplicate_join_sends_once(self):
        await self._connected()
        assert await self.connection.join(FOO) is True
        assert await self.connection.join(Channel(id="1", name="FOO")) is False
        assert self.transport.sent == ["JOIN #foo"]
        assert len(self.connection.membership) == 1

    @pytest.mark.asyncio
    async def test_part_of_non_member_sends_nothing(self):
        await self._connected()
        assert await self.connection.part(FOO) is False
        assert self.transport.sent == []

    @pytest.mark.asyncio
    async def test_part_removes_member(self):
        await self._connected()
        await self.connection.join(FOO)
        assert await self.connection.part(FOO) is True
        assert self.transport.sent == ["JOIN #foo", "PART #foo"]
        assert FOO not in self.connection.membership

    @pytest.mark.asyncio
    async def test_join_while_disconnected_is_recorded_and_replayed(self):
        assert await self.connection.join(FOO) is True
        assert self.transport.sent == []
        await self.connection.connect()
        await self.transport.open()
        assert self.transport.sent[-1] == "JOIN #foo"

    @pytest.mark.asyncio
    async def test_part_while_disconnected_forgets_channel(self):
        await self.connection.join(FOO)
        assert await self.connection.part(FOO) is True
        await self.connection.connect()
        await self.transport.open()
        assert not any(line.startswith("JOIN") for line in self.transport.sent)

    @pytest.mark.asyncio
    async def test_join_and_part_while_disconnected_logged_as_deferred(self):
        with patch("twitch_irc.irc.connection.logger") as mock_logger:
            await self.connection.join(FOO)
            await self.connection.part(FOO)
        calls = [
            (call.args[1], call.kwargs["level"])
            for call in mock_logger.log_event.call_args_list
            if call.args[1].startswith(("join", "part"))
        ]
        assert calls == [
            ("join_deferred", logging.DEBUG),
            ("part_deferred", logging.DEBUG),
        ]

    @pytest.mark.asyncio
    async def test_join_and_part_while_connected_logged_as_sent(self):
        await self._connected()
        with patch("twitch_irc.irc.connection.logger") as mock_logger:
            await self.connection.join(FOO)
            await self.connection.part(FOO)
        calls = [
            (call.args[1], call.kwargs["level"])
            for call in mock_logger.log_event.call_args_list
            if call.args[1].startswith(("join", "part"))
        ]
        assert calls == [("join", logging.INFO), ("part", logging.INFO)]

    @pytest.mark.asyncio
    async def test_join_with_failed_send_logged_as_deferred(self):
        await self._connected()
        self.transport.fail_send = True
        with patch("twitch_irc.irc.connection.logger") as mock_logger:
            assert await self.connection.join(FOO) is True
        actions = [call.args[1] for call in mock_logger.log_event.call_args_list]
        assert "join_deferred" in actions
        assert "join" not in actions
        assert FOO in self.connection.membership


class TestShutdownDuringConnect:
    """Shutdown while the transport is still opening."""

    def setup_method(self):
        self.transport = BlockingTransport()
        self.connection = IRCConnection(
            self.transport,
            FakeCredentialSource(tester_credential()),
            RecordingDispatcher(),
        )

    @pytest.mark.asyncio
    async def test_shutdown_cancels_reconnect_blocked_in_connect(self):
        self.transport.block = False
        await self.connection.connect()
        await self.transport.open()
        await self.transport.receive(WELCOME)
        self.transport.block = True
        self.transport.entered.clear()

        await self.transport.close(server_initiated=True)
        await self.transport.entered.wait()
        assert self.connection.state is ConnectionState.CONNECTING

        await self.connection.shutdown()
        assert self.connection.state is ConnectionState.DISCONNECTED

        self.transport.block = False
        assert await self.connection.connect() is True
        assert self.connection.state is ConnectionState.CONNECTING
        assert self.transport.connect_calls == 3

    @pytest.mark.asyncio
    async def test_failed_open_after_shutdown_settles_disconnected(self):
        self.transport.fail_connect = True
        pending = asyncio.create_task(self.connection.connect())
        await self.transport.entered.wait()

        await self.connection.shutdown()
        assert self.connection.state is ConnectionState.DISCONNECTING
        assert self.transport.disconnect_calls == 1

        self.transport.release.set()
        assert await pending is True
        assert self.connection.state is ConnectionState.DISCONNECTED
        assert isinstance(self.connection.last_error, TransportError)

        self.transport.fail_connect = False
        assert await self.connection.connect() is True
        assert self.connection.state is ConnectionState.CONNECTING

    @pytest.mark.asyncio
    async def test_open_after_shutdown_is_closed_again(self):
        pending = asyncio.create_task(self.connection.connect())
        await self.transport.entered.wait()
        await self.connection.shutdown()

        self.transport.release.set()
        await pending
        assert self.connection.state is ConnectionState.DISCONNECTING

        await self.transport.open()
        assert self.transport.sent == []
        assert self.transport.disconnect_calls == 2
        await self.transport.close(server_initiated=False)
        assert self.connection.state is ConnectionState.DISCONNECTED


class TestConnectionAttempt:
    def test_welcome_line_uses_lowercased_username(self):
        attempt = ConnectionAttempt(number=1, credential=tester_credential())
        assert attempt.username == "tester"
        assert attempt.welcome_line("tmi.twitch.tv") == WELCOME

    def test_welcome_line_without_credential(self):
        assert ConnectionAttempt(number=1).welcome_line("tmi.twitch.tv") is None


@pytest.mark.asyncio
async def test_each_member_joined_once_per_attempt(transport, credentials, dispatcher):
    connection = IRCConnection(
        transport, credentials, dispatcher, membership=ChannelMembership([FOO, BAR, FOO])
    )
    await connection.connect()
    await transport.open()
    joins = [line for line in transport.sent if line.startswith("JOIN")]
    assert joins == ["JOIN #foo", "JOIN #bar"]
    await transport.receive(WELCOME)
    assert connection.state is ConnectionState.CONNECTED


@pytest.mark.asyncio
async def test_custom_capabilities_and_server_name(transport, credentials, dispatcher):
    connection = IRCConnection(
        transport,
        credentials,
        dispatcher,
        server_name="irc.example.test",
        capabilities=("twitch.tv/tags",),
    )
    await connection.connect()
    await transport.open()
    assert transport.sent[0] == "CAP REQ :twitch.tv/tags"
    await transport.receive(WELCOME)
    assert connection.state is ConnectionState.CONNECTING
    await transport.receive(":irc.example.test 001 tester :Welcome, GLHF!")
    assert connection.state is ConnectionState.CONNECTED
