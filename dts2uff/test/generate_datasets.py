"""
Generate synthetic DTS exports for testing
"""

from pathlib import Path
import xml.etree.ElementTree as ElementTree

import numpy as np

from dts2uff.core.channel import ChannelHeader
from dts2uff.rawio.dtsrawio.chnheader import chn_header_size, chn_magic, write_chn_header


def make_chn_header(point_count, **fields):
    """A ChannelHeader with sensible defaults, any field can be overridden."""
    trigger_count = fields.get("trigger_count", 0)
    info = dict(
        magic=chn_magic,
        header_version=1,
        data_start=chn_header_size(trigger_count),
        point_count=point_count,
        bit_length=16,
        signed=1,
        sample_rate=1000.0,
        trigger_count=trigger_count,
        first_trigger_sample=0,
        pre_test_zero_level=0,
        removed_adc=0,
        pre_test_diagnostic_level=0,
        pre_test_noise=0.0,
        post_test_zero_level=0,
        post_test_diagnostic_level=0,
        data_zero_level=0,
        scale_factor_mv=1.0,
        scale_factor_eu=1.0,
    )
    info.update(fields)
    return ChannelHeader(**info)


def write_chn_file(filename, samples, extra_triggers=None, **fields):
    """
    Write a .chn file holding ``samples`` (int16).

    When ``data_start`` is given past the end of the header the gap is
    filled with 0xFF bytes.
    """
    samples = np.asarray(samples, dtype="<i2")
    header = make_chn_header(samples.size, **fields)
    buf = write_chn_header(header, extra_triggers=extra_triggers)
    gap = header.data_start - len(buf)
    if gap < 0:
        raise ValueError("data_start overlaps the header")
    with open(filename, "wb") as f:
        f.write(buf)
        f.write(b"\xff" * gap)
        f.write(samples.tobytes())
    return header


def default_channel_attributes(i):
    return {
        "AbsoluteDisplayOrder": str(i),
        "Description": f"Sensor {i}",
        "SerialNumber": f"SN{i:04d}",
        "Eu": "g",
        "ProportionalToExcitation": "False",
        "IsInverted": "False",
        "MeasuredExcitationVoltage": "4.98",
        "FactoryExcitationVoltage": "5.0",
        "InitialEu": "0",
        "ZeroMethod": "None",
        "ZeroAverageWindowBegin": "-0.05",
        "ZeroAverageWindowEnd": "-0.01",
        "TimeOfFirstSample": "0",
        "Sensitivity": "0.1",
    }


def make_dts_text(modules, second_document=False):
    """
    XML text of a .dts file.

    ``modules`` is a list of ``(start_record_sample_number, [attributes, ...])``;
    an attribute set to None is left out.
    """
    root = ElementTree.Element("Test", {"Id": "TEST-001", "Description": "synthetic export"})
    modules_element = ElementTree.SubElement(root, "Modules")
    for m, (start_record, channels) in enumerate(modules):
        attrs = {"SerialNumber": f"DM{m:04d}", "Number": str(m)}
        if start_record is not None:
            attrs["StartRecordSampleNumber"] = str(start_record)
        module = ElementTree.SubElement(modules_element, "Module", attrs)
        channels_element = ElementTree.SubElement(module, "Channels")
        for channel in channels:
            attrs = {k: v for k, v in channel.items() if v is not None}
            ElementTree.SubElement(channels_element, "AnalogInputChanel", attrs)

    body = ElementTree.tostring(root, encoding="unicode")
    text = '<?xml version="1.0" encoding="utf-16"?>\n' + body + "\n"
    if second_document:
        text += '<?xml version="1.0" encoding="utf-16"?>\n<Test Id="appended"><Broken>\n'
    return text


def write_dts_file(filename, modules, encoding="utf-16", second_document=False):
    """Write a .dts file; "utf-16" writes a BOM, "utf-16-le" and "utf-8" do not."""
    text = make_dts_text(modules, second_document=second_document)
    with open(filename, "wb") as f:
        f.write(text.encode(encoding))


def generate_dts_export(dirname, channels, module_sizes=None, start_records=None, chn_names=None,
                        encoding="utf-16"):
    """
    Write a complete export (one .dts, one .chn per channel) in ``dirname``.

    Parameters
    ----------
    channels: list[dict]
        For each channel: "samples" (int16 values), optional "header"
        (ChannelHeader field overrides) and "attributes" (XML attribute overrides)
    module_sizes: list[int] | None
        Number of channels in each module, all in one module by default
    start_records: list[int] | None
        StartRecordSampleNumber of each module, 0 by default
    chn_names: list[str] | None
        .chn file names, ``CH<i>.chn`` by default

    Returns
    -------
    chn_filenames: list[Path]
    """
    dirname = Path(dirname)
    dirname.mkdir(parents=True, exist_ok=True)
    nb_channel = len(channels)
    if module_sizes is None:
        module_sizes = [nb_channel]
    if start_records is None:
        start_records = [0] * len(module_sizes)
    if chn_names is None:
        chn_names = [f"CH{i + 1}.chn" for i in range(nb_channel)]

    all_attributes = []
    chn_filenames = []
    for i, channel in enumerate(channels):
        attributes = default_channel_attributes(i + 1)
        attributes.update(channel.get("attributes", {}))
        all_attributes.append(attributes)
        filename = dirname / chn_names[i]
        write_chn_file(filename, channel["samples"], **channel.get("header", {}))
        chn_filenames.append(filename)

    modules = []
    start = 0
    for size, start_record in zip(module_sizes, start_records):
        modules.append((start_record, all_attributes[start : start + size]))
        start += size

    write_dts_file(dirname / "export.dts", modules, encoding=encoding)
    return chn_filenames


def write_track_names(filename, names, separator="\r\n"):
    with open(filename, "w", encoding="utf-8", newline="") as f:
        f.write(separator.join(names))
