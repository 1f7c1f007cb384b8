#!/usr/bin/env python3
"""
Capture Example

Opens the first RTL-SDR, tunes it with a preset and prints the average
power of a few sample blocks.

Tuner chip drivers are not bundled; register one for your dongle's tuner
before running, e.g.:

    from rtlsdr_driver import register_tuner
    register_tuner("r820t", lambda bus: MyR820T(bus))
"""

import logging
import sys

import numpy as np

from rtlsdr_driver import FatalInitializationError, RtlSdr, RtlSdrError, get_preset
from rtlsdr_driver.utils.conversions import freq_to_str, sample_rate_to_str

BLOCK_SAMPLES = 256 * 1024
NUM_BLOCKS = 8


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")

    devices = RtlSdr.list_devices()
    if not devices:
        print("No RTL-SDR devices found")
        return 1
    for info in devices:
        print(f"[{info.index}] {info.name} ({info.manufacturer} {info.product}, SN: {info.serial})")

    preset = sys.argv[1] if len(sys.argv) > 1 else "fm_broadcast"
    config = get_preset(preset)
    if config is None:
        print(f"Unknown preset: {preset}")
        return 1

    try:
        sdr = RtlSdr.open(0, config=config)
    except FatalInitializationError as e:
        print(f"Could not initialize receiver: {e}")
        print("Is a driver registered for this tuner? See rtlsdr_driver.register_tuner()")
        return 1

    with sdr:
        print(f"Tuner: {sdr.tuner_info.id}")
        print(f"Center: {freq_to_str(sdr.get_center_freq())}")
        print(f"Rate: {sample_rate_to_str(sdr.get_sample_rate())}")

        try:
            for i in range(NUM_BLOCKS):
                samples = sdr.read_samples(BLOCK_SAMPLES)
                power_db = 10 * np.log10(np.mean(np.abs(samples) ** 2) + 1e-12)
                print(f"Block {i}: {len(samples)} samples, {power_db:.1f} dBFS")
        except RtlSdrError as e:
            print(f"Read failed: {e}")
            return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
