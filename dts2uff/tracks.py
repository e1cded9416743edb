"""
Naming and selection of the tracks (channels) to convert.

The track names are given by the user in a text file, one name per line
or comma separated. The n-th name labels the n-th channel of the export.
A subset of tracks can then be requested by name.
"""

import codecs
import logging
import re

from dts2uff.core.errors import ConversionIOError, UnresolvedTrackNameError

logger = logging.getLogger(__name__)

_separators = re.compile(r"[,\n\r]")


def parse_track_names(text):
    """
    Split a list of track names on commas and line breaks.

    Names are stripped and empty entries are dropped.

    >>> parse_track_names("Head X\\r\\nHead Y, Head Z\\n")
    ['Head X', 'Head Y', 'Head Z']
    """
    names = [name.strip() for name in _separators.split(text)]
    return [name for name in names if name]


def load_track_names(filename):
    """
    Read the track names file.

    Raises
    ------
    ConversionIOError
        The file can not be read
    ValueError
        The file holds no name
    """
    try:
        with open(filename, "rb") as f:
            data = f.read()
    except OSError as e:
        raise ConversionIOError(f"Failed to read track names from {filename}: {e}") from e

    if data.startswith(codecs.BOM_UTF8):
        data = data[len(codecs.BOM_UTF8) :]
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError:
        text = data.decode("latin-1")

    names = parse_track_names(text)
    if len(names) == 0:
        raise ValueError(f"No track name found in {filename}")
    return names


def parse_track_selection(value):
    """
    Parse a comma separated list of requested tracks.

    >>> parse_track_selection("Head X, Chest Z")
    ['Head X', 'Chest Z']
    """
    if isinstance(value, str):
        names = [name.strip() for name in value.split(",")]
    else:
        names = [str(name).strip() for name in value]
    names = [name for name in names if name]
    if len(names) == 0:
        raise ValueError("Track selection is empty")
    return names


class TrackSelector:
    """
    Label the channels of a reader and resolve requested track names.

    Parameters
    ----------
    reader: DtsRawIO
        A reader whose header is parsed
    track_names: list[str] | None
        Label of each channel, by position. Channels past the end of the
        list are labelled ``Channel_<index>``. When None the channel names
        of the reader are used.

    A number of labels different from the number of channels is not an
    error but is stored in ``warnings``.
    """

    def __init__(self, reader, track_names=None):
        self.reader = reader
        self.warnings = []
        nb_channel = reader.channel_count()

        if track_names is None:
            self.track_names = None
            self.labels = [c.name for c in reader.channels]
            return

        self.track_names = list(track_names)
        if len(self.track_names) != nb_channel:
            txt = (
                f"Number of track names ({len(self.track_names)}) does not match "
                f"number of channels ({nb_channel})"
            )
            logger.warning(txt)
            self.warnings.append(txt)

        self.labels = []
        for i in range(nb_channel):
            if i < len(self.track_names):
                self.labels.append(self.track_names[i])
            else:
                self.labels.append(f"Channel_{i + 1}")

    def label(self, channel_index):
        """Track name of the 1-based channel ``channel_index``."""
        return self.labels[channel_index - 1]

    def _resolve_one(self, name):
        if name in self.labels:
            return self.labels.index(name) + 1
        indexes = self.reader.find_channels(name)
        if len(indexes) > 0:
            return indexes[0]
        return None

    def resolve(self, names=None):
        """
        Map track names to 1-based channel indexes, in request order.

        Names are matched exactly (case sensitive) against the labels, then
        the channel descriptions, then the serial numbers.
        ``names=None`` selects every channel in channel order.

        Raises
        ------
        UnresolvedTrackNameError
            Listing every name that matched nothing
        """
        if names is None:
            return list(range(1, len(self.labels) + 1))

        indexes = []
        unresolved = []
        for name in names:
            index = self._resolve_one(name)
            if index is None:
                unresolved.append(name)
            else:
                indexes.append(index)
        if len(unresolved) > 0:
            raise UnresolvedTrackNameError(unresolved)
        return indexes
