import pytest

from memsim_viz.models.bitfield import (
    clamp_to_bits,
    is_power_of_two,
    log2_exact,
    mask_of,
    nibbles_for,
    to_bin,
    to_hex,
    validate_width,
)
from memsim_viz.models.errors import ConfigError


@pytest.mark.parametrize("bits, expected", [
    (0, 0),
    (-3, 0),
    (4, 0xF),
    (12, 0xFFF),
    (64, (1 << 64) - 1),
])
def test_mask_of(bits, expected):
    assert mask_of(bits) == expected


@pytest.mark.parametrize("n, expected", [
    (1, True),
    (2, True),
    (4096, True),
    (0, False),
    (6, False),
    (-4, False),
    (True, False),
])
def test_is_power_of_two(n, expected):
    assert is_power_of_two(n) is expected


def test_log2_exact():
    assert log2_exact(1) == 0
    assert log2_exact(16) == 4
    assert log2_exact(4096) == 12


def test_log2_exact_rejects_non_power_of_two():
    with pytest.raises(ConfigError) as excinfo:
        log2_exact(12, "block_size")
    assert excinfo.value.parameter == "block_size"
    assert excinfo.value.value == 12
    assert "block_size=12" in str(excinfo.value)


def test_clamp_to_bits():
    assert clamp_to_bits(0x1FF, 8) == 0xFF
    assert clamp_to_bits(0x1234_5678_9, 32) == 0x2345_6789


def test_hex_and_binary_formatting():
    assert to_hex(0) == "0x0"
    assert to_hex(255) == "0xFF"
    assert to_hex(0xA004, 8) == "0x0000A004"
    assert to_bin(5, 8) == "00000101"
    assert to_bin(5) == "101"


@pytest.mark.parametrize("bits, digits", [(1, 1), (4, 1), (13, 4), (32, 8), (64, 16)])
def test_nibbles_for(bits, digits):
    assert nibbles_for(bits) == digits


@pytest.mark.parametrize("bits", [0, 65, -1])
def test_validate_width_rejects_out_of_range(bits):
    with pytest.raises(ConfigError):
        validate_width("addr_bits", bits)


def test_config_error_is_value_error():
    assert issubclass(ConfigError, ValueError)
