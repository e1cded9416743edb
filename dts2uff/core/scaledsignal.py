"""
Lazy access to the engineering-unit samples of one channel.

A :class:`ScaledSampleStream` does not hold samples: every iteration
re-reads the .chn file through the reader, chunk by chunk, and rescales the
raw ADC codes. It carries the time information as :mod:`quantities`
(``sampling_rate`` in Hz, ``t_start`` in s) like the signal objects of the
rest of the package.
"""

from __future__ import annotations

import numpy as np
import quantities as pq

# a multiple of the 6 (real) and 4 (complex) values per line of the UFF
# ASCII data block, so chunks never split a line
default_chunk_size = 6 * 2**15


class ScaledSampleStream:
    """
    Engineering-unit samples of one channel over ``[i_start, i_stop)``.

    Parameters
    ----------
    rawio: DtsRawIO
        A reader whose header is parsed
    channel_index: int
        1-based channel number
    i_start, i_stop: int
        Sample range, already validated against the channel
    chunk_size: int
        Number of samples read per iteration step

    Usage:
        >>> stream = reader.get_scaled_stream(channel_index=3)
        >>> for chunk in stream:
        ...     process(chunk)
        >>> whole = stream.read()
    """

    def __init__(self, rawio, channel_index, i_start, i_stop, chunk_size=default_chunk_size):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.rawio = rawio
        self.channel_index = channel_index
        self.i_start = int(i_start)
        self.i_stop = int(i_stop)
        self.chunk_size = int(chunk_size)

        channel = rawio.get_channel(channel_index)
        self.name = channel.name
        self.units = channel.units
        self.sampling_rate = channel.sampling_rate * pq.Hz
        self.t_start = rawio.get_time_of_first_sample(channel_index, self.i_start) * pq.s

    @property
    def sampling_period(self):
        return (1.0 / self.sampling_rate).rescale(pq.s)

    @property
    def t_stop(self):
        return (self.t_start + len(self) * self.sampling_period).rescale(pq.s)

    def __len__(self):
        return self.i_stop - self.i_start

    def __iter__(self):
        for start in range(self.i_start, self.i_stop, self.chunk_size):
            stop = min(start + self.chunk_size, self.i_stop)
            raw = self.rawio.get_analogsignal_chunk(self.channel_index, start, stop)
            yield self.rawio.rescale_signal_raw_to_float(raw, self.channel_index)

    def read(self):
        """All samples of the range as one float64 array."""
        if len(self) == 0:
            return np.zeros(0, dtype="float64")
        raw = self.rawio.get_analogsignal_chunk(self.channel_index, self.i_start, self.i_stop)
        return self.rawio.rescale_signal_raw_to_float(raw, self.channel_index)

    def __repr__(self):
        return (
            f"<ScaledSampleStream channel {self.channel_index} '{self.name}' "
            f"[{self.i_start}:{self.i_stop}] {len(self)} samples in {self.units}>"
        )
