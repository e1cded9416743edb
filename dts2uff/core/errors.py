"""
Exceptions raised while reading DTS exports and writing UFF files.

Everything derives from :class:`DtsReadWriteError` so a front end can catch
a single class; format problems derive from :class:`FormatError`.
"""


class DtsReadWriteError(IOError):
    """Base class of every error raised by dts2uff when reading or writing."""


class FormatError(DtsReadWriteError):
    """The content of a DTS export does not match the expected format."""


class BadMagicError(FormatError):
    """A .chn file does not start with the DTS signature."""

    def __init__(self, filename, magic, expected):
        self.chn_filename = filename
        self.magic = magic
        self.expected = expected
        super().__init__(
            f"{filename}: magic key 0x{magic:08X} at byte 0 does not match 0x{expected:08X}, "
            "not a DTS .chn file or file corrupted"
        )


class TruncatedFileError(FormatError):
    """A .chn file is shorter than its header says."""


class MissingAttributeError(FormatError):
    """
    One or more mandatory values are absent or unparsable.

    All the problems found while building the channel registry are gathered
    in ``problems`` (a list of str) and reported at once.
    """

    def __init__(self, problems):
        if isinstance(problems, str):
            problems = [problems]
        self.problems = list(problems)
        txt = "; ".join(self.problems)
        super().__init__(f"{len(self.problems)} missing or invalid attribute(s): {txt}")


class ChannelCountMismatchError(FormatError):
    """The number of .chn files differs from the number of channels in the .dts file."""

    def __init__(self, nb_header, nb_metadata, dirname=None):
        self.nb_header = nb_header
        self.nb_metadata = nb_metadata
        where = f" in {dirname}" if dirname is not None else ""
        super().__init__(
            f"Mismatch between channel count in .dts file ({nb_metadata}) "
            f"and number of .chn files ({nb_header}){where}"
        )


class ChannelOrderError(FormatError):
    """The .chn file order and the .dts channel order do not agree."""


class RangeOutOfBoundsError(FormatError):
    """A requested sample range exceeds the samples available in a channel."""

    def __init__(self, channel_index, channel_name, start, stop, point_count):
        self.channel_index = channel_index
        self.channel_name = channel_name
        self.start = start
        self.stop = stop
        self.point_count = point_count
        super().__init__(
            f"Sample range {start}:{stop} is out of bounds for channel {channel_index} "
            f"'{channel_name}' which has {point_count} samples"
        )


class UnresolvedTrackNameError(DtsReadWriteError):
    """Some requested track names do not match any channel."""

    def __init__(self, names):
        self.names = list(names)
        quoted = ", ".join(f"'{name}'" for name in self.names)
        super().__init__(f"No channel matches the track name(s): {quoted}")


class ConversionIOError(DtsReadWriteError):
    """An underlying read or write failed; the original error is chained as __cause__."""
