"""
DtsRawIO is a class to read the test exports of DTS SLICEWare data recorders.

An export is one directory holding:
  * one XML description file (.dts) listing the modules and their
    ``AnalogInputChanel`` elements,
  * one binary file (.chn) per channel with a fixed header followed by the
    int16 ADC codes.

The .chn files are matched to the XML channels by position: the files are
sorted after left padding their names with "0" to the same length
(so CH2 comes before CH10) and the n-th file goes with the n-th channel of
the document. Channels are numbered from 1 in that order.

Each channel has its own sampling rate and length. The raw codes are
converted to engineering units with ``raw * gain + offset`` where::

    gain = scale_mv / scale_eu / excitation

``scale_mv`` being negated for inverted channels, ``excitation`` being 1
for channels not proportional to excitation, and the offset depending on
the zero method of the channel (pre-test zero level, data zero level or
none) plus the initial EU value.
"""

from __future__ import annotations

import math
from pathlib import Path

import numpy as np

from dts2uff.core.channel import Channel, SampleRange, channel_problems
from dts2uff.core.errors import (
    ChannelCountMismatchError,
    ChannelOrderError,
    MissingAttributeError,
    RangeOutOfBoundsError,
)
from dts2uff.core.scaledsignal import ScaledSampleStream, default_chunk_size

from ..baserawio import BaseRawIO, _signal_channel_dtype
from ..utils import get_memmap_chunk_from_opened_file, padded_sort
from .chnheader import chn_sample_dtype, read_chn_header
from .dtsxml import find_dts_file, read_dts_metadata


class DtsRawIO(BaseRawIO):
    """
    Class for reading DTS SLICEWare exports (.dts + .chn).

    Parameters
    ----------
    dirname: str | Path
        The directory holding the .dts file and the .chn files
    strict_order: bool, default: False
        If True, a .dts file whose AbsoluteDisplayOrder values do not
        increase along the .chn order raises ChannelOrderError instead of
        logging a warning
    chunk_size: int
        Number of samples read at once by the scaled streams

    Usage:
        >>> import dts2uff.rawio
        >>> r = dts2uff.rawio.DtsRawIO(dirname='/dir/to/export')
        >>> r.parse_header()
        >>> print(r)
        >>> raw_chunk = r.get_analogsignal_chunk(channel_index=1, i_start=0, i_stop=1024)
        >>> float_chunk = r.rescale_signal_raw_to_float(raw_chunk, channel_index=1)
        >>> stream = r.get_scaled_stream(channel_index=1)

    """

    extensions = ["dts", "chn"]
    rawmode = "one-dir"

    def __init__(self, dirname="", strict_order=False, chunk_size=default_chunk_size):
        BaseRawIO.__init__(self)
        self.dirname = dirname
        self.strict_order = strict_order
        self.chunk_size = chunk_size
        self.warnings = []

    def _source_name(self):
        return str(self.dirname)

    def _warn(self, txt):
        self.logger.warning(txt)
        self.warnings.append(txt)

    def _parse_header(self):
        dirname = Path(self.dirname)
        self.warnings = []

        self.dts_filename = find_dts_file(dirname)
        all_metadata = read_dts_metadata(self.dts_filename)

        chn_filenames = [p for p in dirname.iterdir() if p.suffix.lower() == ".chn" and p.is_file()]
        self.chn_filenames = padded_sort(chn_filenames)

        headers = []
        for filename in self.chn_filenames:
            header = read_chn_header(filename)
            if header.bit_length != 16:
                self._warn(f"{filename.name}: bit length is {header.bit_length}, samples are read as int16")
            headers.append(header)

        if len(headers) != len(all_metadata):
            raise ChannelCountMismatchError(len(headers), len(all_metadata), dirname=dirname)

        problems = []
        for i, (header, metadata) in enumerate(zip(headers, all_metadata)):
            problems.extend(channel_problems(i + 1, header, metadata))
        if len(problems) > 0:
            raise MissingAttributeError(problems)

        self._check_display_order(all_metadata)

        self._channels = []
        signal_channels = []
        for i, (filename, header, metadata) in enumerate(zip(self.chn_filenames, headers, all_metadata)):
            channel = Channel(i + 1, filename, header, metadata)
            self._channels.append(channel)
            self.logger.debug(f"{filename.name}: channel {channel.index} '{channel.name}' gain {channel.gain:g}")
            signal_channels.append(
                (
                    channel.name,
                    str(channel.index),
                    channel.sampling_rate,
                    chn_sample_dtype.str,
                    channel.units,
                    channel.gain,
                    channel.offset,
                    channel.point_count,
                )
            )
        signal_channels = np.array(signal_channels, dtype=_signal_channel_dtype)

        self.header = {}
        self.header["signal_channels"] = signal_channels

    def _check_display_order(self, all_metadata):
        orders = [m.absolute_display_order for m in all_metadata]
        present = [o for o in orders if not math.isnan(o)]
        if all(a < b for a, b in zip(present[:-1], present[1:])):
            return
        txt = (
            f"AbsoluteDisplayOrder values {present} do not increase along the .chn file order, "
            "check that the .chn files match the channels of the .dts file"
        )
        if self.strict_order:
            raise ChannelOrderError(txt)
        self._warn(txt)

    def _get_analogsignal_chunk(self, channel_index, i_start, i_stop):
        channel = self._channels[channel_index - 1]
        with open(channel.filename, "rb") as fid:
            raw = get_memmap_chunk_from_opened_file(
                fid, i_start, i_stop, chn_sample_dtype, file_offset=channel.header.data_start
            )
            # copy so the mapping does not outlive the call
            raw = np.array(raw)
        return raw

    def channel_count(self):
        return len(self._channels)

    def get_channel(self, channel_index):
        """Return the :class:`Channel` number ``channel_index`` (1-based)."""
        self._get_channel_row(channel_index)
        return self._channels[channel_index - 1]

    @property
    def channels(self):
        return list(self._channels)

    def find_channels(self, name):
        """
        Indexes of the channels whose description or serial number is exactly ``name``.

        The description is tried first: serial numbers are only looked at
        when no description matches.
        """
        indexes = [c.index for c in self._channels if c.metadata.description == name]
        if len(indexes) == 0:
            indexes = [c.index for c in self._channels if c.metadata.serial_number == name]
        return indexes

    def track_metadata(self):
        """List of dict describing each channel, in channel order."""
        tracks = []
        for c in self._channels:
            tracks.append(
                dict(
                    index=c.index,
                    name=c.name,
                    description=c.metadata.description,
                    serial_number=c.metadata.serial_number,
                    eu=c.units,
                    sampling_rate=c.sampling_rate,
                    sensitivity=c.metadata.sensitivity,
                    point_count=c.point_count,
                )
            )
        return tracks

    def get_time_of_first_sample(self, channel_index, start=0):
        """Time in s of sample ``start`` of a channel, relative to the trigger."""
        return self.get_channel(channel_index).time_of_first_sample(start)

    def check_range(self, channel_index, sample_range=None):
        """
        Resolve a :class:`SampleRange` against a channel.

        Returns
        -------
        (start, stop): tuple[int, int]

        Raises
        ------
        RangeOutOfBoundsError
            If the range does not fit in the channel samples
        """
        channel = self.get_channel(channel_index)
        if sample_range is None:
            sample_range = SampleRange()
        start, stop = sample_range.resolve(channel.point_count)
        if not sample_range.is_within(channel.point_count):
            raise RangeOutOfBoundsError(channel.index, channel.name, start, stop, channel.point_count)
        return start, stop

    def batch_range(self, channel_indexes, sample_range=None):
        """
        Common (start, stop) of a batch of channels.

        Every channel is checked against ``sample_range``; the stop is then
        clamped to the shortest channel so all the streams of a batch have
        the same length.
        """
        if len(channel_indexes) == 0:
            raise ValueError("channel_indexes is empty")
        bounds = [self.check_range(channel_index, sample_range) for channel_index in channel_indexes]
        start = bounds[0][0]
        stop = min(b[1] for b in bounds)
        return start, stop

    def batch_length(self, channel_indexes, sample_range=None):
        start, stop = self.batch_range(channel_indexes, sample_range)
        return stop - start

    def get_scaled_stream(self, channel_index, sample_range=None):
        """
        Lazy engineering-unit samples of one channel.

        Returns
        -------
        stream: ScaledSampleStream
        """
        start, stop = self.check_range(channel_index, sample_range)
        return ScaledSampleStream(self, channel_index, start, stop, chunk_size=self.chunk_size)

    def get_scaled_streams(self, channel_indexes, sample_range=None):
        """One stream per channel, all clamped to the length of the shortest one."""
        start, stop = self.batch_range(channel_indexes, sample_range)
        return [
            ScaledSampleStream(self, channel_index, start, stop, chunk_size=self.chunk_size)
            for channel_index in channel_indexes
        ]
