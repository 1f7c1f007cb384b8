"""Tests for conversion utilities."""

import pytest

from rtlsdr_driver.utils.conversions import freq_to_str, sample_rate_to_str, to_signed


class TestToSigned:
    """Test two's-complement reinterpretation."""

    def test_positive(self):
        """Test values below the sign bit are unchanged."""
        assert to_signed(0x7FFF, 16) == 32767
        assert to_signed(0, 16) == 0

    def test_negative(self):
        """Test values with the sign bit set wrap."""
        assert to_signed(0xFFFF, 16) == -1
        assert to_signed(0x8000, 16) == -32768

    def test_truncates(self):
        """Test only the low bits are kept."""
        assert to_signed(0x1_0001, 16) == 1
        assert to_signed(-168, 16) == -168

    @pytest.mark.parametrize("bits", [8, 14, 22])
    def test_range(self, bits):
        """Test the result always fits the field."""
        for value in (0, 1, (1 << bits) - 1, 1 << (bits - 1), -1):
            result = to_signed(value, bits)
            assert -(1 << (bits - 1)) <= result < (1 << (bits - 1))


class TestFrequencyConversions:
    """Test human-readable formatting."""

    def test_freq_to_str_hz(self):
        """Test Hz formatting."""
        assert freq_to_str(500) == "500.0 Hz"

    def test_freq_to_str_khz(self):
        """Test kHz formatting."""
        assert freq_to_str(225_001) == "225.001 kHz"

    def test_freq_to_str_mhz(self):
        """Test MHz formatting."""
        assert freq_to_str(100_100_000) == "100.100000 MHz"

    def test_freq_to_str_ghz(self):
        """Test GHz formatting."""
        assert freq_to_str(1_090_000_000) == "1.090000 GHz"

    def test_sample_rate_to_str(self):
        """Test sample rate formatting."""
        assert sample_rate_to_str(2_048_000) == "2.05 MS/s"
        assert sample_rate_to_str(250_000) == "250.00 kS/s"
        assert sample_rate_to_str(10) == "10 S/s"
