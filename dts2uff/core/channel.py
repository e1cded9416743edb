"""
Records describing one DTS channel.

:class:`ChannelHeader` is decoded from the binary .chn file,
:class:`ChannelMetadata` comes from the .dts XML description and
:class:`Channel` joins both and carries the derived scaling (excitation,
effective mV scale factor, gain and offset).
"""

from __future__ import annotations

from collections import namedtuple
from enum import Enum
import math


class ZeroMethod(Enum):
    """Which reference ADC code sets the zero offset of a channel."""

    diagnostic = "UsePreCalZero"
    averaged = "AverageOverTime"
    none = "None"

    @classmethod
    def from_attribute(cls, txt):
        if txt == cls.diagnostic.value:
            return cls.diagnostic
        elif txt == cls.averaged.value:
            return cls.averaged
        return cls.none


ChannelHeader = namedtuple(
    "ChannelHeader",
    [
        "magic",
        "header_version",
        "data_start",
        "point_count",
        "bit_length",
        "signed",
        "sample_rate",
        "trigger_count",
        "first_trigger_sample",
        "pre_test_zero_level",
        "removed_adc",
        "pre_test_diagnostic_level",
        "pre_test_noise",
        "post_test_zero_level",
        "post_test_diagnostic_level",
        "data_zero_level",
        "scale_factor_mv",
        "scale_factor_eu",
    ],
)


ChannelMetadata = namedtuple(
    "ChannelMetadata",
    [
        "absolute_display_order",
        "proportional_to_excitation",
        "is_inverted",
        "measured_excitation",
        "factory_excitation",
        "initial_eu",
        "zero_method",
        "zero_average_window_begin",
        "zero_average_window_end",
        "time_of_first_sample",
        "start_record_sample_number",
        "serial_number",
        "description",
        "eu",
        "sensitivity",
    ],
)


def compute_excitation(metadata):
    """
    Excitation a channel is normalised against.

    1.0 when the channel is not proportional to excitation, otherwise the
    factory excitation, or the measured one when the factory value is NaN.
    The result is NaN when both are absent; callers must reject it.
    """
    if not metadata.proportional_to_excitation:
        return 1.0
    if math.isnan(metadata.factory_excitation):
        return float(metadata.measured_excitation)
    return float(metadata.factory_excitation)


def channel_problems(index, header, metadata):
    """Return the list of reasons why a channel can not be scaled (empty when it can)."""
    problems = []
    prefix = f"channel {index}"
    if not math.isfinite(header.sample_rate) or header.sample_rate <= 0:
        problems.append(f"{prefix}: invalid sample rate {header.sample_rate!r} in .chn header")
    if not math.isfinite(header.scale_factor_eu) or header.scale_factor_eu == 0:
        problems.append(f"{prefix}: invalid scale factor to EU {header.scale_factor_eu!r} in .chn header")
    if not math.isfinite(header.scale_factor_mv):
        problems.append(f"{prefix}: invalid scale factor to mV {header.scale_factor_mv!r} in .chn header")
    excitation = compute_excitation(metadata)
    if math.isnan(excitation):
        problems.append(f"{prefix}: proportional to excitation but no FactoryExcitationVoltage "
                        "nor MeasuredExcitationVoltage")
    elif excitation == 0 or not math.isfinite(excitation):
        problems.append(f"{prefix}: excitation voltage is {excitation!r}")
    if math.isnan(metadata.initial_eu):
        problems.append(f"{prefix}: missing InitialEu")
    return problems


class Channel:
    """
    One channel of a DTS export, ready to be scaled.

    Parameters
    ----------
    index: int
        1-based channel number (position in the padded .chn sort)
    filename: str | Path
        The .chn file holding the samples
    header: ChannelHeader
    metadata: ChannelMetadata
    label: str | None
        Track name given by the caller; defaults to the description,
        then the serial number, then ``Channel_<index>``

    Use :func:`channel_problems` before building a Channel: the constructor
    does not accept a NaN or zero excitation.
    """

    def __init__(self, index, filename, header, metadata, label=None):
        self.index = index
        self.filename = filename
        self.header = header
        self.metadata = metadata

        self.excitation = compute_excitation(metadata)
        if math.isnan(self.excitation) or self.excitation == 0:
            raise ValueError(f"channel {index}: excitation must be finite and non zero")

        if metadata.is_inverted:
            self.scale_factor_mv = -header.scale_factor_mv
        else:
            self.scale_factor_mv = header.scale_factor_mv

        if label is None:
            label = default_channel_name(index, metadata)
        self.name = label

    @property
    def gain(self):
        """EU per ADC count."""
        return self.scale_factor_mv / self.header.scale_factor_eu / self.excitation

    @property
    def offset(self):
        zero_method = self.metadata.zero_method
        if zero_method == ZeroMethod.diagnostic:
            return -self.header.pre_test_zero_level * self.gain + self.metadata.initial_eu
        elif zero_method == ZeroMethod.averaged:
            return -self.header.data_zero_level * self.gain + self.metadata.initial_eu
        return self.metadata.initial_eu

    @property
    def sampling_rate(self):
        return self.header.sample_rate

    @property
    def point_count(self):
        return int(self.header.point_count)

    @property
    def units(self):
        return self.metadata.eu

    def time_of_first_sample(self, start=0):
        """Time in s of sample ``start`` relative to the trigger."""
        first_trigger = self.header.first_trigger_sample
        start_record = self.metadata.start_record_sample_number
        return (start_record - first_trigger + start) / self.header.sample_rate

    def __repr__(self):
        return f"<Channel {self.index} '{self.name}' ({self.units}) {self.point_count} samples>"


def default_channel_name(index, metadata):
    description = metadata.description.strip()
    if description:
        return description
    serial = metadata.serial_number.strip()
    if serial:
        return serial
    return f"Channel_{index}"


class SampleRange(namedtuple("SampleRange", ["start", "stop"])):
    """
    Half-open ``[start, stop)`` range of sample indexes.

    ``stop=None`` means "until the last sample of the channel".
    """

    __slots__ = ()

    def __new__(cls, start=0, stop=None):
        if start is None:
            start = 0
        start = int(start)
        if stop is not None:
            stop = int(stop)
        return super().__new__(cls, start, stop)

    @classmethod
    def from_string(cls, txt):
        """
        Parse ``"start:stop"`` (stop exclusive, either bound may be omitted).

        >>> SampleRange.from_string("100:2000")
        SampleRange(start=100, stop=2000)
        """
        txt = txt.strip()
        if ":" not in txt:
            raise ValueError(f"Invalid sample slice '{txt}', expected 'start:end'")
        start_txt, stop_txt = txt.split(":", 1)
        try:
            start = int(start_txt) if start_txt.strip() else 0
            stop = int(stop_txt) if stop_txt.strip() else None
        except ValueError:
            raise ValueError(f"Invalid sample slice '{txt}', bounds must be integers") from None
        if start < 0 or (stop is not None and stop < start):
            raise ValueError(f"Invalid sample slice '{txt}', expected 0 <= start <= end")
        return cls(start, stop)

    def resolve(self, point_count):
        """Concrete (start, stop) for a channel of ``point_count`` samples."""
        stop = point_count if self.stop is None else self.stop
        return self.start, stop

    def is_within(self, point_count):
        start, stop = self.resolve(point_count)
        return 0 <= start <= stop <= point_count

    def __str__(self):
        stop = "" if self.stop is None else self.stop
        return f"{self.start}:{stop}"
