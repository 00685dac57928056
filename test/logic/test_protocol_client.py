import threading

import pytest

from fleascope.device import ClientState, ProtocolClient
from fleascope.device.mock import MockFleaTerminal
from fleascope.types import CommandCancelled, ProtocolIOError, ProtocolTimeout

SCOPE = "scope 90 0x00 0x00 0"


@pytest.fixture
def terminal():
    term = MockFleaTerminal(version="FleaScope v2.1.0")
    term.echo = False
    return term


@pytest.fixture
def client(terminal):
    return ProtocolClient(
        terminal, timeout=0.3, retries=3, poll_interval=0.01, cancel_drain_timeout=0.1
    )


class TestExecute:
    def test_response_without_prompt(self, client):
        assert client.execute("ver") == "FleaScope v2.1.0"
        assert client.state == ClientState.COMPLETE

    def test_empty_response(self, client, terminal):
        assert client.execute("prompt on") == ""

    def test_multi_line_response(self, client):
        payload = client.execute(SCOPE)
        assert len(payload.splitlines()) == 2000
        assert payload.splitlines()[0] == "2048,0x000"

    def test_echo_is_part_of_payload(self, client, terminal):
        terminal.echo = True
        assert client.execute("ver").splitlines() == ["ver", "FleaScope v2.1.0"]

    def test_stale_input_is_discarded(self, client, terminal):
        terminal.inject(b"2048,0x0\r\n> 12")
        assert client.execute("ver") == "FleaScope v2.1.0"

    def test_rejects_multi_line_command(self, client, terminal):
        with pytest.raises(ValueError):
            client.execute("ver\nhostname")
        assert terminal.commands == []

    def test_rejects_non_channel(self):
        with pytest.raises(TypeError):
            ProtocolClient(object())

    def test_commands_are_serialized(self, client):
        results = []

        def worker():
            results.append(client.execute("ver"))

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert results == ["FleaScope v2.1.0"] * 5


class TestRetry:
    def test_recovers_after_lost_responses(self, client, terminal):
        terminal.drop_responses = 2
        assert client.execute("ver") == "FleaScope v2.1.0"
        assert terminal.commands.count("ver") == 3
        assert terminal.interrupts == 2

    def test_timeout_after_all_attempts(self, client, terminal):
        terminal.drop_responses = 100
        with pytest.raises(ProtocolTimeout) as exc_info:
            client.execute("ver", timeout=0.05)
        assert exc_info.value.attempts == 4
        assert terminal.commands.count("ver") == 4
        assert client.state == ClientState.TIMED_OUT

    @pytest.mark.parametrize("retries", [0, 1, 2])
    def test_attempt_count(self, terminal, retries):
        client = ProtocolClient(
            terminal,
            timeout=0.05,
            retries=retries,
            poll_interval=0.01,
            cancel_drain_timeout=0.05,
        )
        terminal.drop_responses = 100
        with pytest.raises(ProtocolTimeout):
            client.execute("hostname")
        assert terminal.commands.count("hostname") == retries + 1

    def test_io_error_is_not_retried(self, client, terminal):
        terminal.fail_writes = True
        with pytest.raises(ProtocolIOError):
            client.execute("ver")
        assert terminal.commands == []
        assert client.state == ClientState.IO_ERROR

    def test_closed_channel(self, client, terminal):
        terminal.close()
        with pytest.raises(ProtocolIOError):
            client.execute("ver")

    def test_usable_after_timeout(self, client, terminal):
        terminal.drop_responses = 100
        with pytest.raises(ProtocolTimeout):
            client.execute("ver", timeout=0.05)
        terminal.drop_responses = 0
        assert client.execute("hostname") == "FleaScope"


class TestCancel:
    def test_cancel_in_flight_capture(self, client, terminal):
        terminal.hold_capture = True
        cancel = threading.Event()
        timer = threading.Timer(0.1, cancel.set)
        timer.start()
        try:
            with pytest.raises(CommandCancelled):
                client.execute(SCOPE, timeout=5.0, cancel_event=cancel)
        finally:
            timer.cancel()
        assert client.state == ClientState.CANCELLED
        assert terminal.interrupts == 1

        terminal.hold_capture = False
        assert client.execute("ver") == "FleaScope v2.1.0"
        assert client.state == ClientState.COMPLETE

    def test_cancel_before_response(self, client, terminal):
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(CommandCancelled):
            client.execute("ver", cancel_event=cancel)
        assert client.execute("hostname") == "FleaScope"

    def test_cancel_is_not_retried(self, client, terminal):
        terminal.hold_capture = True
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(CommandCancelled):
            client.execute(SCOPE, cancel_event=cancel)
        assert terminal.captures == [SCOPE]


class TestInitialize:
    def test_turns_prompt_on(self, terminal):
        terminal.prompt = False
        client = ProtocolClient(terminal, poll_interval=0.01)
        client.initialize(timeout=0.1)
        assert terminal.prompt is True
        assert terminal.interrupts == 1
        assert client.execute("ver") == "FleaScope v2.1.0"

    def test_hung_device_times_out(self, terminal):
        terminal.hung_until_reset = True
        client = ProtocolClient(terminal, poll_interval=0.01, cancel_drain_timeout=0.05)
        with pytest.raises(ProtocolTimeout):
            client.initialize(timeout=0.05)
        assert terminal.commands.count("prompt on") == 1

    def test_send_reset(self, client, terminal):
        terminal.hung_until_reset = True
        client.send_reset()
        assert terminal.resets == 1
        assert client.state == ClientState.IDLE
        terminal.echo = False
        assert client.execute("ver") == "FleaScope v2.1.0"
