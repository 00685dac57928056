import pytest

from fleascope.device import LineBuffer, SerialChannel
from fleascope.types import ChannelTimeout, ProtocolIOError


class TestLineBuffer:
    def test_lines_across_chunks(self):
        buf = LineBuffer()
        buf.feed(b"20")
        assert buf.pop_line() is None
        buf.feed(b"48,0x000\r\n2049,")
        assert buf.pop_line() == "2048,0x000"
        assert buf.pop_line() is None
        buf.feed(b"0x001\n")
        assert buf.pop_line() == "2049,0x001"
        assert len(buf) == 0

    def test_prompt_without_newline(self):
        buf = LineBuffer()
        buf.feed(b"FleaScope\r\n> ")
        assert buf.pop_line() == "FleaScope"
        assert buf.pop_line() == "> "
        assert buf.pop_line() is None

    def test_non_ascii(self):
        buf = LineBuffer()
        buf.feed(b"\xff\xfe\n")
        with pytest.raises(ProtocolIOError):
            buf.pop_line()

    def test_clear(self):
        buf = LineBuffer()
        buf.feed(b"partial")
        buf.clear()
        buf.feed(b"> ")
        assert buf.pop_line() == "> "


class TestSerialChannel:
    @pytest.fixture
    def channel(self):
        channel = SerialChannel("loop://", read_timeout=0.01)
        channel.open()
        yield channel
        channel.close()

    def test_read_lines(self, channel):
        assert channel.is_open
        channel.write(b"ver\r\nFleaScope v2.1.0\r\n> ")
        assert channel.read_line(0.5) == "ver"
        assert channel.read_line(0.5) == "FleaScope v2.1.0"
        assert channel.read_line(0.5) == "> "

    def test_timeout(self, channel):
        channel.write(b"no newline")
        with pytest.raises(ChannelTimeout):
            channel.read_line(0.05)

    def test_reset_discards_input(self, channel):
        channel.write(b"stale\r\n")
        channel.reset()
        channel.write(b"fresh\r\n")
        assert channel.read_line(0.5) == "fresh"

    def test_closed(self, channel):
        channel.close()
        assert not channel.is_open
        with pytest.raises(ProtocolIOError):
            channel.write(b"ver\n")
        with pytest.raises(ProtocolIOError):
            channel.read_line(0.05)

    def test_open_failure(self):
        with pytest.raises(ProtocolIOError):
            SerialChannel("/dev/fleascope-does-not-exist").open()
