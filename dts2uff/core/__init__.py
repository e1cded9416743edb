"""
:mod:`dts2uff.core` provides the objects shared by the readers and the writer.

Classes:

* :class:`ChannelHeader`: fields decoded from a .chn binary header
* :class:`ChannelMetadata`: channel attributes from the .dts XML description
* :class:`Channel`: header + metadata + derived scaling
* :class:`SampleRange`: half-open range of sample indexes
* :class:`ScaledSampleStream`: lazy engineering-unit samples of one channel
* :class:`Uff58Dataset`: content of one UFF type 58 record
"""

from dts2uff.core.errors import (
    DtsReadWriteError,
    FormatError,
    BadMagicError,
    TruncatedFileError,
    MissingAttributeError,
    ChannelCountMismatchError,
    ChannelOrderError,
    RangeOutOfBoundsError,
    UnresolvedTrackNameError,
    ConversionIOError,
)
from dts2uff.core.channel import (
    ZeroMethod,
    ChannelHeader,
    ChannelMetadata,
    Channel,
    SampleRange,
    compute_excitation,
    channel_problems,
)
from dts2uff.core.scaledsignal import ScaledSampleStream
from dts2uff.core.uffdataset import Uff58Dataset
