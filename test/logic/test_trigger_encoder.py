import pytest

from fleascope.acquisition import CalibrationStore, encode
from fleascope.types import (
    AnalogTrigger,
    AnalogTriggerFields,
    BitState,
    CalibrationNotSet,
    DigitalTrigger,
    DigitalTriggerFields,
    ProbeType,
    TriggerLevelOutOfRange,
)


@pytest.fixture
def store():
    store = CalibrationStore()
    store.set_calibration(ProbeType.X1, 100.0, 4000.0)
    return store


def to_raw_x1(store):
    return lambda volts: store.to_raw(ProbeType.X1, volts)


def uncalibrated(volts):
    return None


class TestDigitalTrigger:
    def test_pattern_and_mask(self):
        trigger = (
            DigitalTrigger.start_capturing_when()
            .bit0(BitState.HIGH)
            .bit1(BitState.LOW)
            .starts_matching()
        )
        fields = encode(trigger, uncalibrated)
        assert fields == DigitalTriggerFields(pattern=0x01, mask=0x03, mode_code="+")
        assert fields.to_wire() == "+0x01 0x03"

    def test_unconditional(self):
        trigger = DigitalTrigger.start_capturing_when().is_matching()
        assert trigger.is_unconditional
        fields = encode(trigger, uncalibrated)
        assert fields.pattern == 0 and fields.mask == 0
        assert fields.to_wire() == "0x00 0x00"

    def test_bit_order_does_not_matter(self):
        a = (
            DigitalTrigger.start_capturing_when()
            .bit3(BitState.HIGH)
            .bit8(BitState.LOW)
            .is_matching()
        )
        b = (
            DigitalTrigger.start_capturing_when()
            .bit8(BitState.LOW)
            .bit3(BitState.HIGH)
            .is_matching()
        )
        assert encode(a, uncalibrated) == encode(b, uncalibrated)
        assert encode(a, uncalibrated).mask == (1 << 3) | (1 << 8)

    @pytest.mark.parametrize(
        "finish, code",
        [
            ("is_matching", ""),
            ("starts_matching", "+"),
            ("stops_matching", "-"),
            ("auto", "~"),
        ],
    )
    def test_mode_codes(self, finish, code):
        builder = DigitalTrigger.start_capturing_when().bit2(BitState.HIGH)
        fields = encode(getattr(builder, finish)(), uncalibrated)
        assert fields.mode_code == code
        assert fields.to_wire() == f"{code}0x04 0x04"

    def test_bit_out_of_range(self):
        with pytest.raises(IndexError):
            DigitalTrigger.start_capturing_when().set_bit(9, BitState.HIGH)
        with pytest.raises(IndexError):
            DigitalTrigger.start_capturing_when().set_bit(-1, BitState.LOW)

    def test_wrong_number_of_bits(self):
        with pytest.raises(ValueError):
            DigitalTrigger((BitState.HIGH,) * 3)


class TestAnalogTrigger:
    def test_rising_edge_midscale(self, store):
        trigger = AnalogTrigger.start_capturing_when().rising_edge(1.65)
        fields = encode(trigger, to_raw_x1(store))
        # to_raw(1.65) = 100 + 0.5 * 3900 = 2050
        assert fields == AnalogTriggerFields(mode_code="+", threshold=513)
        assert fields.to_wire() == "+513 0"

    @pytest.mark.parametrize(
        "finish, code",
        [("rising_edge", "+"), ("falling_edge", "-"), ("level", ""), ("auto", "~")],
    )
    def test_edge_codes(self, store, finish, code):
        builder = AnalogTrigger.start_capturing_when()
        fields = encode(getattr(builder, finish)(0.0), to_raw_x1(store))
        # to_raw(0) = 100 -> 100 / 4
        assert fields.to_wire() == f"{code}25 0"

    @pytest.mark.parametrize("finish", ["rising_edge", "falling_edge", "level", "auto"])
    @pytest.mark.parametrize("volts", [0.0, 1.0])
    def test_uncalibrated_probe(self, finish, volts):
        trigger = getattr(AnalogTrigger.start_capturing_when(), finish)(volts)
        with pytest.raises(CalibrationNotSet):
            encode(trigger, uncalibrated)

    def test_level_out_of_range(self, store):
        with pytest.raises(TriggerLevelOutOfRange):
            encode(AnalogTrigger.start_capturing_when().level(100.0), to_raw_x1(store))
        with pytest.raises(TriggerLevelOutOfRange):
            encode(AnalogTrigger.start_capturing_when().level(-50.0), to_raw_x1(store))

    def test_out_of_range_is_a_value_error(self, store):
        with pytest.raises(ValueError):
            encode(AnalogTrigger.start_capturing_when().level(100.0), to_raw_x1(store))


class TestDefaultTrigger:
    def test_default_is_analog_auto_at_zero(self, store):
        fields = encode(None, to_raw_x1(store))
        assert fields == AnalogTriggerFields(mode_code="~", threshold=25)

    def test_default_needs_calibration(self):
        with pytest.raises(CalibrationNotSet):
            encode(None, uncalibrated)

    def test_x10_threshold_uses_attenuation(self):
        store = CalibrationStore()
        store.set_calibration(ProbeType.X10, 2048.0, 2048.0 + 10 * 1000.0)
        # 3.3 V at the x10 tip is 0.33 V at the input: 2048 + 1000
        fields = encode(
            AnalogTrigger.start_capturing_when().rising_edge(3.3),
            lambda v: store.to_raw(ProbeType.X10, v),
        )
        assert fields.threshold == 762
