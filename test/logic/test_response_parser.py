import numpy as np
import pytest

from fleascope.acquisition import CalibrationStore, ResponseParser
from fleascope.types import MalformedRow, ParseError, ProbeType, Sample

INTERVAL = 5e-6


@pytest.fixture
def parser():
    store = CalibrationStore()
    store.set_calibration(ProbeType.X1, 0.0, 3300.0)
    return ResponseParser(store)


class TestResponseParser:
    def test_rows(self, parser):
        result = parser.parse("1000,0x1ff\r\n2000,0x000\n1650,3", ProbeType.X1, INTERVAL)
        assert len(result) == 3
        assert result[0] == Sample(0.0, 1000.0, 0x1FF)
        assert result[2].bitmask == 3
        np.testing.assert_allclose(result.time, [0.0, INTERVAL, 2 * INTERVAL])
        np.testing.assert_allclose(result.voltages, [1.0, 2.0, 1.65])

    def test_delay_shifts_time(self, parser):
        result = parser.parse("1,0x0\n2,0x0", ProbeType.X1, INTERVAL, delay=0.001)
        assert result[0].time_offset == pytest.approx(-0.001)
        assert result[1].time_offset == pytest.approx(-0.001 + INTERVAL)

    def test_bits(self, parser):
        result = parser.parse("0,0x101\n0,0x002", ProbeType.X1, INTERVAL)
        assert result[0].bit(0) and result[0].bit(8) and not result[0].bit(1)
        np.testing.assert_array_equal(result.bit(1), [False, True])
        assert result.digital_bits().shape == (2, 9)

    def test_empty_payload(self, parser):
        result = parser.parse("", ProbeType.X1, INTERVAL)
        assert len(result) == 0
        assert result.digital_bits().shape == (0, 9)

    def test_uncalibrated_has_no_voltages(self):
        result = ResponseParser(CalibrationStore()).parse(
            "100,0x1", ProbeType.X1, INTERVAL
        )
        assert result.voltages is None
        assert not result.is_calibrated
        assert result.raw[0] == 100.0
        assert result.bit(0)[0]

    def test_calibration_is_snapshot(self):
        store = CalibrationStore()
        store.set_calibration(ProbeType.X1, 0.0, 3300.0)
        result = ResponseParser(store).parse("3300,0x0", ProbeType.X1, INTERVAL)
        store.set_full_scale_reference(ProbeType.X1, 6600.0)
        assert result.voltages[0] == pytest.approx(3.3)

    def test_result_is_immutable(self, parser):
        result = parser.parse("1,0x0", ProbeType.X1, INTERVAL)
        with pytest.raises(ValueError):
            result.raw[0] = 5.0

    def test_columns(self, parser):
        cols = parser.parse("1650,0x1", ProbeType.X1, INTERVAL).as_columns()
        assert {"time", "bnc_raw", "bnc", "bitmap", "bit_0", "bit_8"} <= set(cols)
        assert cols["bnc"][0] == pytest.approx(1.65)

    @pytest.mark.parametrize(
        "payload, index",
        [
            ("1,0x0\n2", 1),
            ("1,0x0\n2,0x0,3", 1),
            ("abc,0x0", 0),
            ("1,0xZZ", 0),
            ("1,0x0\n2,0x0\n3,0x10000", 2),
            ("1,", 0),
            ("nan,0x0", 0),
        ],
    )
    def test_malformed_row(self, parser, payload, index):
        with pytest.raises(MalformedRow) as exc_info:
            parser.parse(payload, ProbeType.X1, INTERVAL)
        assert exc_info.value.row_index == index
        assert isinstance(exc_info.value, ParseError)

    def test_invalid_interval(self, parser):
        with pytest.raises(ValueError):
            parser.parse("1,0x0", ProbeType.X1, 0.0)
