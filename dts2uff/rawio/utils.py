import codecs
import mmap
import os

import numpy as np


def get_memmap_chunk_from_opened_file(fid, start, stop, dtype, file_offset=0):
    """
    Utility function to get a chunk of a single channel as a memmap array
    directly from an opened file.

    Only the pages covering ``[start, stop)`` are mapped, nothing before
    ``file_offset + start * itemsize`` nor after ``file_offset + stop * itemsize``
    is read.
    """
    dtype = np.dtype(dtype)
    if stop <= start:
        return np.zeros(0, dtype=dtype)

    # Calculate byte offsets
    start_byte = file_offset + start * dtype.itemsize
    end_byte = file_offset + stop * dtype.itemsize

    # Calculate the length of the data chunk to load into memory
    length = end_byte - start_byte

    # The mmap offset must be a multiple of mmap.ALLOCATIONGRANULARITY
    memmap_offset, start_offset = divmod(start_byte, mmap.ALLOCATIONGRANULARITY)
    memmap_offset *= mmap.ALLOCATIONGRANULARITY

    # Adjust the length so it includes the extra data from rounding down
    # the memmap offset to a multiple of ALLOCATIONGRANULARITY
    length += start_offset

    memmap_obj = mmap.mmap(fid.fileno(), length=length, access=mmap.ACCESS_READ, offset=memmap_offset)

    arr = np.ndarray(
        shape=(stop - start,),
        dtype=dtype,
        buffer=memmap_obj,
        offset=start_offset,
    )

    return arr


def padded_sort(filenames, fillchar="0"):
    """
    Sort file names after left padding them to the same length.

    This keeps numbered names in numeric order ("CH2" before "CH10") where a
    plain lexicographic sort would not. Only the base names are compared;
    the sort is stable so equal padded names keep their input order.

    Parameters
    ----------
    filenames: list[str | Path]
    fillchar: str, default: "0"

    Returns
    -------
    sorted_filenames: list
        The input items in the padded order
    """
    filenames = list(filenames)
    if len(filenames) == 0:
        return []
    names = [os.path.basename(os.fspath(f)) for f in filenames]
    maxlen = max(len(name) for name in names)
    order = sorted(range(len(names)), key=lambda i: names[i].rjust(maxlen, fillchar))
    return [filenames[i] for i in order]


_boms = [
    (codecs.BOM_UTF8, "utf-8"),
    (codecs.BOM_UTF16_LE, "utf-16-le"),
    (codecs.BOM_UTF16_BE, "utf-16-be"),
]


def decode_xml_bytes(data):
    """
    Decode the bytes of an XML export to text.

    DTS exports are usually UTF-16 with a BOM but some tools rewrite them as
    UTF-8 or drop the BOM, so: BOM first, then UTF-16 guessed from the
    position of the NUL bytes (an XML document starts with an ASCII
    character), then strict UTF-8.
    Raise UnicodeDecodeError when nothing fits.
    """
    if len(data) == 0:
        return ""

    for bom, encoding in _boms:
        if data.startswith(bom):
            return data[len(bom) :].decode(encoding)

    if len(data) > 1 and data[1] == 0:
        return data.decode("utf-16-le")
    if len(data) > 1 and data[0] == 0:
        return data.decode("utf-16-be")
    return data.decode("utf-8")
