"""
Decoding of the binary header of DTS SLICEWare channel files (.chn).

Layout, all little endian::

    offset  field                        type
    0       magic key (0x2C36351F)       uint32
    4       header version               uint32
    8       offset of the first sample   uint64
    16      number of samples            uint64
    24      bit length                   uint32
    28      signed                       uint32
    32      sample rate (Hz)             float64
    40      number of triggers T         uint16
    42      first trigger sample number  int64
    ...     T - 1 more trigger entries   8 bytes each

then, shifted by N = 8 * T bytes::

    42+N    pre-test zero level          int32
    46+N    removed ADC                  int32
    50+N    pre-test diagnostics level   int32
    54+N    pre-test noise               float64
    62+N    post-test zero level         int32
    66+N    post-test diagnostics level  int32
    70+N    data zero level              int32
    74+N    scale factor to mV           float64
    82+N    scale factor to EU           float64

Samples are int16 starting at the stored offset of the first sample.
Only the first trigger is used; the other entries are skipped as they are.
With no trigger (T = 0) the first trigger sample is reported as 0 rather than
read from offset 42, where the int64 would span the pre-test zero level and
removed ADC fields.
"""

import os

import numpy as np

from dts2uff.core.channel import ChannelHeader
from dts2uff.core.errors import BadMagicError, TruncatedFileError

chn_magic = 0x2C36351F

chn_sample_dtype = np.dtype("<i2")

ChnFixedHeader = [
    ("magic", "<u4"),
    ("header_version", "<u4"),
    ("data_start", "<u8"),
    ("point_count", "<u8"),
    ("bit_length", "<u4"),
    ("signed", "<u4"),
    ("sample_rate", "<f8"),
    ("trigger_count", "<u2"),
    ("first_trigger_sample", "<i8"),
]

ChnTrailingHeader = [
    ("pre_test_zero_level", "<i4"),
    ("removed_adc", "<i4"),
    ("pre_test_diagnostic_level", "<i4"),
    ("pre_test_noise", "<f8"),
    ("post_test_zero_level", "<i4"),
    ("post_test_diagnostic_level", "<i4"),
    ("data_zero_level", "<i4"),
    ("scale_factor_mv", "<f8"),
    ("scale_factor_eu", "<f8"),
]

# nominal offset of the trailing block (with no trigger table)
trailing_header_offset = 42
trigger_entry_size = 8


def chn_header_size(trigger_count):
    """Number of header bytes for a file with ``trigger_count`` triggers."""
    return trailing_header_offset + trigger_count * trigger_entry_size + np.dtype(ChnTrailingHeader).itemsize


def read_as_dict(fid, dtype, offset, filename=""):
    """
    Given a file descriptor and a numpy.dtype of the binary struct
    return a dict of python scalars.
    """
    fid.seek(offset)
    dt = np.dtype(dtype)
    buf = fid.read(dt.itemsize)
    if len(buf) < dt.itemsize:
        raise TruncatedFileError(
            f"{filename}: header truncated, expected {dt.itemsize} bytes at offset {offset}, got {len(buf)}"
        )
    h = np.frombuffer(buf, dtype=dt)[0]
    return {k: h[k].item() for k in dt.names}


def read_chn_header(filename):
    """
    Decode the header of one .chn file.

    Parameters
    ----------
    filename: str | Path

    Returns
    -------
    header: ChannelHeader

    Raises
    ------
    BadMagicError
        The file does not start with the DTS magic key
    TruncatedFileError
        The header or the sample region extends past the end of file
    """
    with open(filename, "rb") as fid:
        buf = fid.read(4)
        magic = int.from_bytes(buf, "little") if len(buf) == 4 else 0
        if len(buf) < 4 or magic != chn_magic:
            raise BadMagicError(filename, magic, chn_magic)

        file_size = os.fstat(fid.fileno()).st_size
        info = read_as_dict(fid, ChnFixedHeader, 0, filename)

        trigger_count = info["trigger_count"]
        n = trigger_count * trigger_entry_size
        trailing = read_as_dict(fid, ChnTrailingHeader, trailing_header_offset + n, filename)

    if trigger_count == 0:
        # no trigger table: bytes 42..49 belong to the trailing block
        info["first_trigger_sample"] = 0
    info.update(trailing)

    data_end = info["data_start"] + info["point_count"] * chn_sample_dtype.itemsize
    if data_end > file_size:
        raise TruncatedFileError(
            f"{filename}: {info['point_count']} samples starting at byte {info['data_start']} "
            f"need {data_end} bytes but the file has {file_size}"
        )

    return ChannelHeader(**info)


def write_chn_header(header, extra_triggers=None):
    """
    Encode a ChannelHeader to bytes at the offsets read by :func:`read_chn_header`.

    Parameters
    ----------
    header: ChannelHeader
    extra_triggers: list[int] | None
        Values of trigger entries 2..T (zeros when None)

    Returns
    -------
    buf: bytes
        ``chn_header_size(header.trigger_count)`` bytes; samples are not included
    """
    trigger_count = header.trigger_count
    n = trigger_count * trigger_entry_size
    buf = bytearray(chn_header_size(trigger_count))

    fixed = np.zeros(1, dtype=ChnFixedHeader)
    for k in fixed.dtype.names:
        fixed[k] = getattr(header, k)
    buf[: fixed.itemsize] = fixed.tobytes()

    if extra_triggers is not None:
        if len(extra_triggers) != max(trigger_count - 1, 0):
            raise ValueError(f"expected {trigger_count - 1} extra trigger entries, got {len(extra_triggers)}")
        start = trailing_header_offset + trigger_entry_size
        buf[start : start + len(extra_triggers) * trigger_entry_size] = np.asarray(
            extra_triggers, dtype="<i8"
        ).tobytes()

    trailing = np.zeros(1, dtype=ChnTrailingHeader)
    for k in trailing.dtype.names:
        trailing[k] = getattr(header, k)
    start = trailing_header_offset + n
    buf[start : start + trailing.itemsize] = trailing.tobytes()

    return bytes(buf)
