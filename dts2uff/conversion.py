"""
Conversion of a DTS export directory into a UFF file of type 58 datasets.

A conversion is described by a :class:`ConversionRequest`. Everything that
can fail before writing (reading the headers and the XML description,
resolving the requested tracks, checking the sample range) is done before
the output file is opened, so a rejected request never touches it.

Usage:
    >>> from dts2uff import ConversionRequest, convert
    >>> request = ConversionRequest(input_dir='/dir/to/export', tracks_path='tracks.txt',
    ...                             output_path='test.uff', output_format='binary')
    >>> report = convert(request)
    >>> report.processed_track_names
"""

from __future__ import annotations

from collections import deque, namedtuple
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
import logging
from pathlib import Path

from dts2uff.core.channel import SampleRange
from dts2uff.core.errors import ConversionIOError, DtsReadWriteError
from dts2uff.core.scaledsignal import ScaledSampleStream
from dts2uff.core.uffdataset import Uff58Dataset
from dts2uff.io.uff58io import Uff58IO, Uff58LineFormat
from dts2uff.rawio.dtsrawio import DtsRawIO
from dts2uff.tracks import TrackSelector, load_track_names, parse_track_selection

logger = logging.getLogger(__name__)


class OutputFormat(Enum):
    ASCII = "ascii"
    BINARY = "binary"

    @classmethod
    def from_string(cls, txt):
        """Parse ``"ascii"`` or ``"binary"`` (case insensitive)."""
        key = txt.strip().lower()
        for member in cls:
            if member.value == key:
                return member
        raise ValueError(f"Unknown output format '{txt}', expected 'ascii' or 'binary'")


possible_actions = ("replace", "add")
possible_abscissa_origins = ("zero", "trigger")


def _dynamx_fields(name, channel):
    # fields of the DynaMX export
    return dict(
        d1="",
        d2=f"Pt={name};",
        date="",
        id4="",
        id5="",
        function_type=1,
        load_case_id=0,
        rsp_ent_name=name,
        rsp_node=0,
        rsp_dir=0,
        ref_ent_name="",
        ref_node=0,
        ref_dir=0,
    )


def _general_fields(name, channel):
    return dict(
        d1="",
        d2=f"Pt={name};",
        date="",
        function_type=1,
        load_case_id=0,
        rsp_ent_name=name,
        rsp_node=0,
        rsp_dir=0,
        ref_ent_name="NONE",
        ref_node=1,
        ref_dir=0,
        abscissa_axis_label="Time",
        abscissa_units_label="s",
        ordinate_axis_label=name,
        ordinate_num_units_label=channel.units,
    )


profiles = {
    "dynamx": _dynamx_fields,
    "general": _general_fields,
}


@dataclass
class ConversionRequest:
    """
    Parameters of one conversion.

    Parameters
    ----------
    input_dir: str | Path
        Directory of the DTS export (.dts + .chn files)
    tracks_path: str | Path | None
        Text file with one track name per channel (one per line or comma
        separated). When None, channels are named from their description
    output_path: str | Path
        The UFF file to write
    output_format: OutputFormat | str, default: OutputFormat.ASCII
    sample_range: SampleRange | str | None, default: None
        ``[start, stop)`` in samples applied to every track, None for all samples
    track_selection: list[str] | str | None, default: None
        Names of the tracks to write, in output order. None writes every track
    action: "replace" | "add", default: "replace"
    profile: "dynamx" | "general", default: "dynamx"
        Which header fields are filled and how
    line_format: Uff58LineFormat
    abscissa_origin: "zero" | "trigger", default: "zero"
        "trigger" starts the abscissa at the time of the first sample
        relative to the trigger
    max_workers: int, default: 1
        Number of threads reading the samples; 1 streams each track from
        disk while it is written
    """

    input_dir: str | Path
    tracks_path: str | Path | None
    output_path: str | Path
    output_format: OutputFormat = OutputFormat.ASCII
    sample_range: SampleRange | None = None
    track_selection: list[str] | None = None
    action: str = "replace"
    profile: str = "dynamx"
    line_format: Uff58LineFormat = field(default_factory=Uff58LineFormat)
    abscissa_origin: str = "zero"
    max_workers: int = 1

    def __post_init__(self):
        if isinstance(self.output_format, str):
            self.output_format = OutputFormat.from_string(self.output_format)
        if isinstance(self.sample_range, str):
            self.sample_range = SampleRange.from_string(self.sample_range)
        if self.track_selection is not None:
            self.track_selection = parse_track_selection(self.track_selection)
        if self.action not in possible_actions:
            raise ValueError(f"action must be one of {possible_actions}, not {self.action!r}")
        if self.profile not in profiles:
            raise ValueError(f"profile must be one of {list(profiles)}, not {self.profile!r}")
        if self.abscissa_origin not in possible_abscissa_origins:
            raise ValueError(f"abscissa_origin must be one of {possible_abscissa_origins}, not {self.abscissa_origin!r}")
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")


ConversionStarted = namedtuple("ConversionStarted", ["channel_count", "track_name_count", "track_count"])
ConversionAdvanced = namedtuple("ConversionAdvanced", ["position", "track_count", "channel_index", "track_name"])
ConversionFinished = namedtuple("ConversionFinished", ["report"])


@dataclass
class ConversionReport:
    output_path: str | Path
    channel_count: int
    track_name_count: int
    processed_track_names: list = field(default_factory=list)
    warnings: list = field(default_factory=list)
    cancelled: bool = False


def _open_reader(input_dir):
    reader = DtsRawIO(dirname=input_dir)
    try:
        reader.parse_header()
    except DtsReadWriteError:
        raise
    except OSError as e:
        raise ConversionIOError(f"Failed to read the DTS export in {input_dir}: {e}") from e
    return reader


def build_dataset(request, name, stream):
    """Make the :class:`Uff58Dataset` of one track from its scaled stream."""
    channel = stream.rawio.get_channel(stream.channel_index)
    kargs = profiles[request.profile](name, channel)
    if request.abscissa_origin == "trigger":
        kargs["abscissa_start"] = float(stream.t_start.magnitude)
    return Uff58Dataset(
        data=stream,
        abscissa_increment=float(stream.sampling_period.magnitude),
        binary=request.output_format == OutputFormat.BINARY,
        **kargs,
    )


def _read_track(stream):
    # materialise the samples in a worker thread, keeping the stream time info
    return stream, stream.read()


def convert(request, progress=None, cancel=None):
    """
    Run a conversion.

    Parameters
    ----------
    request: ConversionRequest
    progress: callable | None
        Called with ConversionStarted, then one ConversionAdvanced per written
        track, then ConversionFinished
    cancel: callable | None
        Called without argument before each track is written; returning True
        stops the conversion after the last complete dataset

    Returns
    -------
    report: ConversionReport

    Raises
    ------
    FormatError, UnresolvedTrackNameError
        Before the output file is touched
    ConversionIOError
        A file could not be read or written
    """
    track_names = None
    if request.tracks_path is not None:
        track_names = load_track_names(request.tracks_path)

    reader = _open_reader(request.input_dir)
    selector = TrackSelector(reader, track_names)
    channel_indexes = selector.resolve(request.track_selection)
    streams = reader.get_scaled_streams(channel_indexes, request.sample_range)

    report = ConversionReport(
        output_path=request.output_path,
        channel_count=reader.channel_count(),
        track_name_count=len(track_names) if track_names is not None else reader.channel_count(),
        warnings=list(reader.warnings) + list(selector.warnings),
    )
    logger.info(
        f"converting {len(streams)} of {report.channel_count} channels from {request.input_dir} "
        f"to {request.output_path} ({request.output_format.value})"
    )
    if progress is not None:
        progress(ConversionStarted(report.channel_count, report.track_name_count, len(streams)))

    writer = Uff58IO(request.output_path, action=request.action, line_format=request.line_format)

    def write(position, stream, data=None):
        name = selector.label(stream.channel_index)
        dataset = build_dataset(request, name, stream)
        if data is not None:
            dataset.data = data
        try:
            writer.write_dataset(dataset)
        except OSError as e:
            raise ConversionIOError(f"Failed to write track '{name}' to {request.output_path}: {e}") from e
        report.processed_track_names.append(name)
        logger.debug(f"track {position + 1}/{len(streams)} '{name}' written")
        if progress is not None:
            progress(ConversionAdvanced(position + 1, len(streams), stream.channel_index, name))

    if request.max_workers == 1:
        for position, stream in enumerate(streams):
            if cancel is not None and cancel():
                report.cancelled = True
                break
            write(position, stream)
    else:
        _convert_parallel(request, streams, write, cancel, report)

    if report.cancelled:
        logger.info(f"conversion cancelled after {len(report.processed_track_names)} tracks")
    if progress is not None:
        progress(ConversionFinished(report))
    return report


def _convert_parallel(request, streams, write, cancel, report):
    # workers read ahead, the single writer consumes the results in track order
    window = 2 * request.max_workers
    remaining = iter(enumerate(streams))
    pending = deque()
    with ThreadPoolExecutor(max_workers=request.max_workers) as executor:
        try:
            while True:
                while len(pending) < window:
                    item = next(remaining, None)
                    if item is None:
                        break
                    position, stream = item
                    pending.append((position, executor.submit(_read_track, stream)))
                if len(pending) == 0:
                    break
                position, future = pending.popleft()
                try:
                    stream, data = future.result()
                except DtsReadWriteError:
                    raise
                except OSError as e:
                    raise ConversionIOError(f"Failed to read the samples of track {position + 1}: {e}") from e
                if cancel is not None and cancel():
                    report.cancelled = True
                    break
                write(position, stream, data)
        finally:
            for _, future in pending:
                future.cancel()


def convert_folder(input_dir, tracks_path, output_path, output_format=OutputFormat.ASCII, **kargs):
    """
    Convert a DTS export directory with keyword options.

    ``kargs`` are the other fields of :class:`ConversionRequest`.
    """
    request = ConversionRequest(
        input_dir=input_dir,
        tracks_path=tracks_path,
        output_path=output_path,
        output_format=output_format,
        **kargs,
    )
    return convert(request)


def list_tracks(input_dir, tracks_path=None):
    """
    Describe the channels of a DTS export.

    Returns
    -------
    tracks: list[dict]
        index, track_name, name, description, serial_number, eu,
        sampling_rate, sensitivity and point_count of every channel
    """
    track_names = None
    if tracks_path is not None:
        track_names = load_track_names(tracks_path)
    reader = _open_reader(input_dir)
    selector = TrackSelector(reader, track_names)
    tracks = reader.track_metadata()
    for track in tracks:
        track["track_name"] = selector.label(track["index"])
    return tracks
