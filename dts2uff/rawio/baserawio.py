"""
baserawio
======

Classes
-------

BaseRawIO
abstract class which should be overridden to write a RawIO.

RawIO is the low level API of dts2uff that provides fast access to the raw
samples of a test export:
  * internal use of memmap
  * fast reading of the header (do not read the complete files)
  * one channel is one physical sensor channel, numbered from 1 in the
    order of the sample files

With this API the IO have an attribute `header` with necessary keys.
This `header` attribute is done in `_parse_header(...)` method.

Every channel has its own sampling rate and length so chunks are always
read for a single channel: `get_analogsignal_chunk()` returns the raw
codes and `rescale_signal_raw_to_float()` applies the channel gain and
offset stored in `header['signal_channels']`.
"""

from __future__ import annotations

import logging
import numpy as np

from dts2uff import logging_handler


error_header = "Header is not read yet, do parse_header() first"

_signal_channel_dtype = [
    ("name", "U64"),  # not necessarily unique
    ("id", "U64"),  # must be unique
    ("sampling_rate", "float64"),
    ("dtype", "U16"),
    ("units", "U64"),
    ("gain", "float64"),
    ("offset", "float64"),
    ("point_count", "int64"),
]


class BaseRawIO:
    """
    Generic class to handle.

    """

    name = "BaseRawIO"
    description = ""
    extensions = []

    rawmode = None  # "one-file", "multi-file" or "one-dir"

    #   When rawmode=='one-file' kargs MUST contains 'filename' the filename
    #   When rawmode=='one-dir' kargs MUST contains 'dirname' the dirname.

    def __init__(self, **kargs):
        """
        init docstring should be filled out at the rawio level so the user knows whether to
        input filename or dirname.

        """
        # create a logger for the IO class
        fullname = self.__class__.__module__ + "." + self.__class__.__name__
        self.logger = logging.getLogger(fullname)
        # Create a logger for 'dts2uff' and add a handler to it if it doesn't have one already.
        # (it will also not add one if the root logger has a handler)
        corename = self.__class__.__module__.split(".")[0]
        corelogger = logging.getLogger(corename)
        rootlogger = logging.getLogger()
        if not corelogger.handlers and not rootlogger.handlers:
            corelogger.addHandler(logging_handler)

        self.header = None
        self.is_header_parsed = False

    def parse_header(self):
        """
        Parses the header of the file(s) to allow for faster computations
        for all other functions

        """
        # this must create
        # self.header['signal_channels']
        self._parse_header()
        self._check_signal_channels()
        self.is_header_parsed = True

    def source_name(self):
        """Return fancy name of file source"""
        return self._source_name()

    def __repr__(self):
        txt = f"{self.__class__.__name__}: {self.source_name()}\n"
        if self.header is not None:
            channels = self.header["signal_channels"]
            txt += f"nb_channel: {channels.size}\n"
            v = pprint_vector(channels["name"])
            txt += f"signal_channels: {v}\n"
            v = pprint_vector([f"{sr:g}" for sr in channels["sampling_rate"]])
            txt += f"sampling_rate: {v}\n"
        return txt

    def signal_channels_count(self):
        """Return the number of signal channels."""
        if self.header is None:
            raise ValueError(error_header)
        return self.header["signal_channels"].size

    def _check_signal_channels(self):
        signal_channels = self.header["signal_channels"]
        channel_ids = signal_channels["id"]
        if np.unique(channel_ids).size != channel_ids.size:
            raise ValueError("signal_channels do not have unique ids")

    def _get_channel_row(self, channel_index: int):
        if self.header is None:
            raise ValueError(error_header)
        nb_channel = self.signal_channels_count()
        if not (1 <= channel_index <= nb_channel):
            raise ValueError(f"channel_index must be between 1 and {nb_channel}, not {channel_index}")
        return self.header["signal_channels"][channel_index - 1]

    def channel_name_to_index(self, channel_names: list[str]):
        """
        Transform channel_names to channel_indexes.
        Based on self.header['signal_channels']
        channel_indexes are 1-based channel numbers

        Parameters
        ----------
        channel_names: list[str]
            The channel names to convert to channel_indexes

        Returns
        -------
        channel_indexes: np.array[int]
            the channel_indexes associated with the given channel_names

        """
        chan_names = list(self.header["signal_channels"]["name"])
        if len(chan_names) != np.unique(chan_names).size:
            raise ValueError("Channel names are not unique")
        channel_indexes = np.array([chan_names.index(name) + 1 for name in channel_names], dtype="int64")
        return channel_indexes

    def get_signal_size(self, channel_index: int):
        """Number of samples of a channel."""
        return int(self._get_channel_row(channel_index)["point_count"])

    def get_signal_sampling_rate(self, channel_index: int):
        return float(self._get_channel_row(channel_index)["sampling_rate"])

    def get_analogsignal_chunk(
        self,
        channel_index: int,
        i_start: int | None = None,
        i_stop: int | None = None,
    ):
        """
        Returns a chunk of raw signal as a Numpy array.

        Parameters
        ----------
        channel_index: int
            1-based number of the channel
        i_start: int | None, default: None
            The index of the first sample (not time) of the desired analog signal
        i_stop: int | None, default: None
            The index of one past the last sample (not time) of the desired analog signal

        Returns
        -------
        raw_chunk: np.array (n_samples, )
            The array with the raw signal samples

        Examples
        --------
        >>> rawio_reader.parse_header()
        >>> raw_sigs = rawio_reader.get_analogsignal_chunk(channel_index=1, i_start=0, i_stop=1000)
        >>> raw_sigs.shape
        (1000,)
        >>> raw_sigs.dtype
        'int16' # returns the dtype from the recording itself

        """
        size = self.get_signal_size(channel_index)
        i_start = i_start if i_start is not None else 0
        i_stop = i_stop if i_stop is not None else size
        if i_start < 0 or i_stop > size or i_start > i_stop:
            raise IndexError(f"Index out of bounds for channel {channel_index}: [{i_start}:{i_stop}] with size {size}")

        raw_chunk = self._get_analogsignal_chunk(channel_index, i_start, i_stop)
        return raw_chunk

    def rescale_signal_raw_to_float(
        self,
        raw_signal: np.ndarray,
        channel_index: int,
        dtype: np.dtype = "float64",
    ):
        """
        Rescales a chunk of raw signals which are provided as a Numpy array. These are normally
        returned by a call to get_analogsignal_chunk.

        Parameters
        ----------
        raw_signal: np.array (n_samples, )
            The raw samples of a single channel
        channel_index: int
            1-based number of the channel the samples belong to
        dtype: np.dype, default: "float64"
            The datatype for returning scaled samples, must be acceptable by the numpy dtype constructor

        Returns
        -------
        float_signal: np.array (n_samples, )
            The rescaled signal, ``raw * gain + offset``

        """
        channel = self._get_channel_row(channel_index)

        float_signal = raw_signal.astype(dtype)

        if channel["gain"] != 1.0:
            float_signal *= channel["gain"]

        if channel["offset"] != 0.0:
            float_signal += channel["offset"]

        return float_signal

    def _parse_header(self):
        raise (NotImplementedError)

    def _source_name(self):
        raise (NotImplementedError)

    def _get_analogsignal_chunk(self, channel_index: int, i_start: int, i_stop: int):
        """
        Return the samples from a single channel as a numpy array.
        i_start and i_stop are already checked against the channel size.
        """
        raise (NotImplementedError)


def pprint_vector(vector, lim: int = 8):
    vector = [str(e) for e in np.asarray(vector)]
    if len(vector) > lim:
        part1 = ", ".join(e for e in vector[: lim // 2])
        part2 = " , ".join(e for e in vector[-lim // 2 :])
        txt = f"[{part1} ... {part2}]"
    else:
        part1 = ", ".join(e for e in vector)
        txt = f"[{part1}]"
    return txt
