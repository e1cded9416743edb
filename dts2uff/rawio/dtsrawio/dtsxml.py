"""
Reading of the XML description (.dts) of a DTS SLICEWare test export.

The description holds one ``Module`` element per data recorder, each with
``AnalogInputChanel`` elements (sic, the exporter spells it this way) whose
attributes describe how the raw codes of the matching .chn file are scaled.
Channels are returned in document order, which is the order of the .chn
files; ``AbsoluteDisplayOrder`` is kept but never used to reorder.
"""

import math
import os
from pathlib import Path
import xml.etree.ElementTree as ElementTree

from dts2uff.core.channel import ChannelMetadata, ZeroMethod
from dts2uff.core.errors import FormatError
from dts2uff.rawio.utils import decode_xml_bytes

module_tag = "Module"
channel_tag = "AnalogInputChanel"
xml_prolog = "<?xml"


def _to_bool(txt):
    return txt == "True"


def _to_float(txt):
    if txt is None:
        return math.nan
    try:
        return float(txt.strip())
    except ValueError:
        return math.nan


def _to_str(txt):
    return "" if txt is None else txt


# attribute of AnalogInputChanel, field of ChannelMetadata, converter
channel_attribute_keys = [
    ("AbsoluteDisplayOrder", "absolute_display_order", _to_float),
    ("ProportionalToExcitation", "proportional_to_excitation", _to_bool),
    ("IsInverted", "is_inverted", _to_bool),
    ("MeasuredExcitationVoltage", "measured_excitation", _to_float),
    ("FactoryExcitationVoltage", "factory_excitation", _to_float),
    ("InitialEu", "initial_eu", _to_float),
    ("ZeroMethod", "zero_method", ZeroMethod.from_attribute),
    ("ZeroAverageWindowBegin", "zero_average_window_begin", _to_float),
    ("ZeroAverageWindowEnd", "zero_average_window_end", _to_float),
    ("TimeOfFirstSample", "time_of_first_sample", _to_float),
    ("SerialNumber", "serial_number", _to_str),
    ("Description", "description", _to_str),
    ("Eu", "eu", _to_str),
    ("Sensitivity", "sensitivity", _to_float),
]


def find_dts_file(dirname):
    """Return the path of the first .dts file of a directory (sorted by name)."""
    candidates = sorted(p for p in Path(dirname).iterdir() if p.suffix.lower() == ".dts" and p.is_file())
    if len(candidates) == 0:
        raise FileNotFoundError(f"No .dts file found in {dirname}")
    return candidates[0]


def drop_trailing_documents(text):
    """
    Cut the text at the second XML prolog.

    Some exports have a second document appended to the first one, which
    no XML parser accepts.
    """
    first = text.find(xml_prolog)
    if first < 0:
        return text
    second = text.find(xml_prolog, first + len(xml_prolog))
    if second < 0:
        return text
    return text[:second]


def _strip_prolog(text):
    # ElementTree refuses a str whose prolog declares an encoding
    text = text.lstrip("\ufeff \t\r\n")
    if text.startswith(xml_prolog):
        end = text.find("?>")
        if end >= 0:
            text = text[end + 2 :]
    return text


def _local_name(tag):
    if "}" in tag:
        return tag.rsplit("}", 1)[1]
    return tag


def parse_dts_metadata(text, filename="<string>"):
    """
    Parse the text of a .dts file.

    Parameters
    ----------
    text: str
    filename: str
        Only used in error messages

    Returns
    -------
    channels: list[ChannelMetadata]
        In document traversal order
    """
    text = _strip_prolog(drop_trailing_documents(text))
    try:
        root = ElementTree.fromstring(text)
    except ElementTree.ParseError as e:
        raise FormatError(f"{filename}: malformed XML, {e}") from e

    channels = []
    _collect_channels(root, 0.0, channels)
    return channels


def _collect_channels(element, start_record, channels):
    name = _local_name(element.tag)
    if name == module_tag:
        txt = element.get("StartRecordSampleNumber")
        start_record = 0.0 if txt is None else _to_float(txt)
    elif name == channel_tag:
        channels.append(_channel_metadata(element, start_record))

    for child in element:
        _collect_channels(child, start_record, channels)


def _channel_metadata(element, start_record):
    info = {}
    for attr, field, converter in channel_attribute_keys:
        info[field] = converter(element.get(attr))
    info["start_record_sample_number"] = start_record
    return ChannelMetadata(**info)


def read_dts_metadata(filename):
    """
    Read the channel descriptions of a .dts file.

    Returns
    -------
    channels: list[ChannelMetadata]
        One entry per AnalogInputChanel element in document order
    """
    with open(filename, "rb") as f:
        data = f.read()
    try:
        text = decode_xml_bytes(data)
    except UnicodeDecodeError as e:
        raise FormatError(f"{os.fspath(filename)}: can not decode the XML text, {e}") from e
    return parse_dts_metadata(text, filename=os.fspath(filename))
