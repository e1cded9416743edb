"""
Class for reading and writing Universal File Format type 58 datasets
(function at a degree of freedom).

A UFF file is a sequence of datasets, each one enclosed between two lines
holding ``-1`` right aligned in 6 columns. A type 58 dataset is made of::

    58                       dataset type (58b for binary samples)
    record 1 to 5            free text (description 1 and 2, date, ID 4, ID 5)
    record 6                 function type, load case, response and reference DOF
    record 7                 ordinate form, number of points, abscissa start and increment
    record 8 to 11           data characteristics of abscissa, ordinate,
                             ordinate denominator and z axis
    data                     6 real values (or 4 real/imaginary values) per line,
                             or raw IEEE 754 doubles for 58b

Every record line is 80 columns wide. The samples are always written as
double precision and the abscissa is always evenly spaced.

Supported: Read and Write

Usage:
    >>> from dts2uff.io import Uff58IO
    >>> w = Uff58IO(filename='test.uff', action='replace')
    >>> w.write_dataset(dataset)
    >>> datasets = Uff58IO(filename='test.uff').read_datasets()

"""

from __future__ import annotations

from dataclasses import dataclass
import os

import numpy as np

from dts2uff.core.errors import FormatError
from dts2uff.core.scaledsignal import default_chunk_size
from dts2uff.core.uffdataset import Uff58Dataset

from .baseio import BaseIO

line_width = 80
delimiter = -1
dataset_type = 58

text_width = 80
entity_width = 10
label_width = 20

# binary header: byte ordering 1 = little endian, floating point format 2 = IEEE 754,
# 11 ASCII lines before the samples
binary_byte_ordering = 1
binary_float_format = 2
binary_header_lines = 11

_real_formats = {"posix": "%13.5e", "windows": "%13.4e"}
_complex_formats = {"posix": "%20.12e", "windows": "%20.11e"}
real_width = 13
complex_width = 20
real_values_per_line = 6
complex_values_per_line = 4


@dataclass(frozen=True)
class Uff58LineFormat:
    """
    Byte level layout of the lines.

    Parameters
    ----------
    terminator: str, default: "\\r\\n"
        End of every line
    suffix: str, default: ""
        Written after the 80 columns of every line, before the terminator
    precision: "posix" | "windows", default: "posix"
        ``posix`` writes 5 (real) or 12 (complex) decimals, ``windows`` one
        less, as the C runtime of Windows prints a 3 digits exponent
    encoding: str, default: "latin-1"
        Encoding of the text fields, one byte per character
    """

    terminator: str = "\r\n"
    suffix: str = ""
    precision: str = "posix"
    encoding: str = "latin-1"

    def __post_init__(self):
        if self.precision not in _real_formats:
            raise ValueError(f"precision must be one of {list(_real_formats)}, not {self.precision!r}")

    @property
    def real_format(self):
        return _real_formats[self.precision]

    @property
    def complex_format(self):
        return _complex_formats[self.precision]


# lines of 81 columns ending with " \r\n" as written by the historical MATLAB exporter
LEGACY_MATLAB = Uff58LineFormat(suffix=" ")


def _fit(txt, width):
    return str(txt)[:width]


def format_text_record(txt):
    return "%-80s" % _fit(txt, text_width)


def format_function_record(ds):
    return "%5i%10i%5i%10i %-10s%10i%4i %-10s%10i%4i" % (
        ds.function_type,
        0,
        0,
        ds.load_case_id,
        _fit(ds.rsp_ent_name, entity_width),
        ds.rsp_node,
        ds.rsp_dir,
        _fit(ds.ref_ent_name, entity_width),
        ds.ref_node,
        ds.ref_dir,
    )


def format_abscissa_record(ds, float_format):
    return ("%10i%10i%10i" + float_format * 3) % (
        ds.ordinate_form,
        len(ds),
        1,
        ds.abscissa_start,
        ds.abscissa_increment,
        ds.z_axis_value,
    )


def format_data_char_record(data_char, length_exp, force_exp, temp_exp, axis_label, units_label):
    return "%10i%5i%5i%5i %-20s %-20s" % (
        data_char,
        length_exp,
        force_exp,
        temp_exp,
        _fit(axis_label, label_width),
        _fit(units_label, label_width),
    )


def format_binary_type_record(nbytes):
    return "%6i%1s%6i%6i%12i%12i%6i%6i%12i%12i" % (
        dataset_type,
        "b",
        binary_byte_ordering,
        binary_float_format,
        binary_header_lines,
        nbytes,
        0,
        0,
        0,
        0,
    )


def _iter_chunks(data):
    # a ScaledSampleStream is re-read from disk, an array is sliced
    if isinstance(data, np.ndarray):
        for start in range(0, data.size, default_chunk_size):
            yield data[start : start + default_chunk_size]
    else:
        yield from data


def _interleaved(chunk):
    chunk = np.asarray(chunk)
    if np.iscomplexobj(chunk):
        return np.column_stack((chunk.real, chunk.imag)).ravel().astype("float64")
    return chunk.astype("float64", copy=False)


def _iter_rows(chunks, per_line):
    carry = np.zeros(0, dtype="float64")
    for chunk in chunks:
        if carry.size > 0:
            chunk = np.concatenate([carry, chunk])
        nfull = (chunk.size // per_line) * per_line
        for row in chunk[:nfull].reshape(-1, per_line):
            yield row
        carry = chunk[nfull:]
    if carry.size > 0:
        yield carry


class Uff58IO(BaseIO):
    """
    Read and write type 58 datasets in a UFF file.

    Parameters
    ----------
    filename: str | Path
    action: "replace" | "add", default: "replace"
        With "replace" the first write truncates the file, with "add" the
        datasets are appended after the existing ones. Later writes through
        the same object always append.
    line_format: Uff58LineFormat | None
        Defaults to ``Uff58LineFormat()``

    If writing a dataset fails, the file is cut back to where that dataset
    started so it never ends with a partial dataset.
    """

    is_readable = True
    is_writable = True

    readable_objects = [Uff58Dataset]
    writeable_objects = [Uff58Dataset]

    name = "UFF58"
    description = "Universal File Format, dataset 58"
    extensions = ["uff", "unv"]

    mode = "file"

    def __init__(self, filename, action="replace", line_format=None):
        BaseIO.__init__(self, filename)
        if action not in ("replace", "add"):
            raise ValueError(f"action must be 'replace' or 'add', not {action!r}")
        self.action = action
        self.line_format = line_format if line_format is not None else Uff58LineFormat()
        self._replace_pending = action == "replace"

    def _line(self, txt, pad=True):
        lf = self.line_format
        if pad:
            txt = txt.ljust(line_width)
        return (txt + lf.suffix + lf.terminator).encode(lf.encoding, errors="replace")

    def write_dataset(self, dataset):
        """Write one :class:`Uff58Dataset`."""
        self.write_datasets([dataset])

    def write_datasets(self, datasets):
        """Write a list of :class:`Uff58Dataset`, in order."""
        mode = "wb" if self._replace_pending else "ab"
        with open(self.filename, mode) as f:
            self._replace_pending = False
            for dataset in datasets:
                start = f.tell()
                try:
                    self._write_dataset(f, dataset)
                except BaseException:
                    f.truncate(start)
                    raise

    def _write_dataset(self, f, ds):
        lf = self.line_format

        f.write(self._line("%6i" % delimiter))

        if ds.binary:
            nvalues = len(ds) * (2 if ds.is_complex else 1)
            f.write(self._line(format_binary_type_record(nvalues * 8)))
        else:
            f.write(self._line("%6i" % dataset_type))

        for txt in (ds.d1, ds.d2, ds.date, ds.id4, ds.id5):
            f.write(self._line(format_text_record(txt)))
        f.write(self._line(format_function_record(ds)))
        f.write(self._line(format_abscissa_record(ds, lf.real_format)))
        f.write(
            self._line(
                format_data_char_record(
                    ds.abscissa_data_char,
                    ds.abscissa_length_exp,
                    ds.abscissa_force_exp,
                    ds.abscissa_temp_exp,
                    ds.abscissa_axis_label,
                    ds.abscissa_units_label,
                )
            )
        )
        f.write(
            self._line(
                format_data_char_record(
                    ds.ordinate_data_char,
                    ds.ordinate_length_exp,
                    ds.ordinate_force_exp,
                    ds.ordinate_temp_exp,
                    ds.ordinate_axis_label,
                    ds.ordinate_num_units_label,
                )
            )
        )
        f.write(
            self._line(
                format_data_char_record(
                    ds.ordinate_denom_data_char,
                    ds.ordinate_denom_length_exp,
                    ds.ordinate_denom_force_exp,
                    ds.ordinate_denom_temp_exp,
                    ds.ordinate_denom_axis_label,
                    ds.ordinate_denom_units_label,
                )
            )
        )
        f.write(
            self._line(
                format_data_char_record(
                    ds.z_data_char,
                    ds.z_length_exp,
                    ds.z_force_exp,
                    ds.z_temp_exp,
                    ds.z_axis_label,
                    ds.z_units_label,
                )
            )
        )

        expected = len(ds) * (2 if ds.is_complex else 1)
        if ds.binary:
            written = self._write_binary_data(f, ds)
        else:
            written = self._write_ascii_data(f, ds)
        if written != expected:
            raise ValueError(f"dataset '{ds.rsp_ent_name}' announced {expected} values but {written} were produced")

        # terminator alone closes the data block
        f.write(lf.terminator.encode(lf.encoding))
        f.write(self._line("%6i" % delimiter))

        self.logger.debug(f"wrote dataset '{ds.rsp_ent_name}' with {len(ds)} points to {self.filename}")

    def _write_ascii_data(self, f, ds):
        lf = self.line_format
        if ds.is_complex:
            fmt, per_line = lf.complex_format, complex_values_per_line
        else:
            fmt, per_line = lf.real_format, real_values_per_line

        chunks = (_interleaved(chunk) for chunk in _iter_chunks(ds.data))
        written = 0
        for row in _iter_rows(chunks, per_line):
            txt = (fmt * row.size) % tuple(row)
            f.write(self._line(txt, pad=False))
            written += row.size
        return written

    def _write_binary_data(self, f, ds):
        written = 0
        for chunk in _iter_chunks(ds.data):
            values = _interleaved(chunk)
            f.write(values.astype("<f8").tobytes())
            written += values.size
        return written

    def read_datasets(self):
        """
        Read every type 58 dataset of the file.

        Datasets of other types are skipped. Samples are read as numpy arrays.

        Returns
        -------
        datasets: list[Uff58Dataset]
        """
        datasets = []
        with open(self.filename, "rb") as f:
            while True:
                line = f.readline()
                if line == b"":
                    break
                if not self._is_delimiter(line):
                    continue
                line = f.readline()
                if line == b"":
                    break
                txt = self._decode(line)
                try:
                    ds_type = int(txt[:6])
                except ValueError as e:
                    raise FormatError(f"{self.filename}: bad dataset type line {txt!r}") from e
                if ds_type != dataset_type:
                    self.logger.warning(f"{self.filename}: skipping dataset of type {ds_type}")
                    self._skip_to_delimiter(f)
                    continue
                binary = txt[6:7] == "b"
                datasets.append(self._read_dataset(f, txt, binary))
        return datasets

    def _decode(self, line):
        return line.decode(self.line_format.encoding).rstrip("\r\n")

    def _is_delimiter(self, line):
        return line.strip() == b"%i" % delimiter

    def _skip_to_delimiter(self, f):
        while True:
            line = f.readline()
            if line == b"" or self._is_delimiter(line):
                return

    def _read_dataset(self, f, type_line, binary):
        lines = []
        for _ in range(binary_header_lines):
            line = f.readline()
            if line == b"":
                raise FormatError(f"{self.filename}: end of file inside a dataset header")
            lines.append(self._decode(line))

        texts = [line[:text_width].rstrip() for line in lines[:5]]
        r6, r7 = lines[5], lines[6]
        try:
            kargs = dict(
                d1=texts[0],
                d2=texts[1],
                date=texts[2],
                id4=texts[3],
                id5=texts[4],
                function_type=int(r6[0:5]),
                load_case_id=int(r6[20:30]),
                rsp_ent_name=r6[31:41].rstrip(),
                rsp_node=int(r6[41:51]),
                rsp_dir=int(r6[51:55]),
                ref_ent_name=r6[56:66].rstrip(),
                ref_node=int(r6[66:76]),
                ref_dir=int(r6[76:80]),
                abscissa_start=float(r7[30:43]),
                abscissa_increment=float(r7[43:56]),
                z_axis_value=float(r7[56:69]),
            )
            ordinate_form = int(r7[0:10])
            npts = int(r7[10:20])
            for prefix, line, units_key in (
                ("abscissa", lines[7], "abscissa_units_label"),
                ("ordinate", lines[8], "ordinate_num_units_label"),
                ("ordinate_denom", lines[9], "ordinate_denom_units_label"),
                ("z", lines[10], "z_units_label"),
            ):
                kargs[f"{prefix}_data_char"] = int(line[0:10])
                kargs[f"{prefix}_length_exp"] = int(line[10:15])
                kargs[f"{prefix}_force_exp"] = int(line[15:20])
                kargs[f"{prefix}_temp_exp"] = int(line[20:25])
                kargs[f"{prefix}_axis_label"] = line[26:46].rstrip()
                kargs[units_key] = line[47:67].rstrip()
        except ValueError as e:
            raise FormatError(f"{self.filename}: malformed type 58 header, {e}") from e

        is_complex = ordinate_form in (5, 6)
        nvalues = npts * (2 if is_complex else 1)

        if binary:
            fields = type_line[6:].split()
            byte_ordering = int(fields[1]) if len(fields) > 1 else binary_byte_ordering
            nbytes = int(fields[4]) if len(fields) > 4 else nvalues * 8
            buf = f.read(nbytes)
            if len(buf) < nbytes:
                raise FormatError(f"{self.filename}: binary block truncated, {len(buf)} of {nbytes} bytes")
            dtype = "<f8" if byte_ordering == 1 else ">f8"
            values = np.frombuffer(buf, dtype=dtype)[:nvalues].astype("float64")
        else:
            width = complex_width if is_complex else real_width
            values = self._read_ascii_values(f, nvalues, width)

        self._skip_to_delimiter(f)

        if is_complex:
            data = values[0::2] + 1j * values[1::2]
        else:
            data = values
        return Uff58Dataset(data=data, binary=binary, **kargs)

    def _read_ascii_values(self, f, nvalues, width):
        values = []
        while len(values) < nvalues:
            line = f.readline()
            if line == b"" or self._is_delimiter(line):
                raise FormatError(f"{self.filename}: expected {nvalues} values, found {len(values)}")
            txt = self._decode(line).rstrip()
            for start in range(0, len(txt), width):
                values.append(float(txt[start : start + width]))
        return np.array(values[:nvalues], dtype="float64")
