"""
Tests of dts2uff.rawio.dtsrawio
"""

import tempfile
import unittest
from pathlib import Path

import numpy as np
import quantities as pq
from numpy.testing import assert_array_almost_equal, assert_array_equal

from dts2uff.core.channel import SampleRange
from dts2uff.core.errors import (
    BadMagicError,
    ChannelCountMismatchError,
    ChannelOrderError,
    MissingAttributeError,
    RangeOutOfBoundsError,
)
from dts2uff.rawio import DtsRawIO, get_rawio
from dts2uff.test.generate_datasets import generate_dts_export


class BaseDtsTest(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.dirname = Path(self.tmp.name)

    def tearDown(self):
        self.tmp.cleanup()

    def open_reader(self, **kargs):
        reader = DtsRawIO(dirname=self.dirname, **kargs)
        reader.parse_header()
        return reader


class TestDtsRawIOScaling(BaseDtsTest):
    def test_concrete_scenario(self):
        # T=0, 1000 Hz, 2 mV/count, 4 mV/EU, not proportional, no zero, InitialEu 0
        generate_dts_export(
            self.dirname,
            [
                dict(
                    samples=[100, -50],
                    header=dict(trigger_count=0, sample_rate=1000.0, scale_factor_mv=2.0, scale_factor_eu=4.0),
                    attributes=dict(ZeroMethod="None", InitialEu="0.0", ProportionalToExcitation="False"),
                )
            ],
        )
        reader = self.open_reader()
        raw = reader.get_analogsignal_chunk(channel_index=1)
        assert_array_equal(raw, [100, -50])
        self.assertEqual(raw.dtype, np.dtype("int16"))
        float_sigs = reader.rescale_signal_raw_to_float(raw, channel_index=1)
        assert_array_equal(float_sigs, [50.0, -25.0])
        assert_array_equal(reader.get_scaled_stream(1).read(), [50.0, -25.0])

    def test_zero_methods(self):
        header = dict(scale_factor_mv=1.0, scale_factor_eu=2.0, pre_test_zero_level=10, data_zero_level=20)
        generate_dts_export(
            self.dirname,
            [
                dict(samples=[30], header=header, attributes=dict(ZeroMethod="UsePreCalZero", InitialEu="1")),
                dict(samples=[30], header=header, attributes=dict(ZeroMethod="AverageOverTime", InitialEu="1")),
                dict(samples=[30], header=header, attributes=dict(ZeroMethod="None", InitialEu="1")),
            ],
        )
        reader = self.open_reader()
        values = [reader.get_scaled_stream(i).read()[0] for i in (1, 2, 3)]
        # gain 0.5: (30 - 10) * 0.5 + 1, (30 - 20) * 0.5 + 1, 30 * 0.5 + 1
        assert_array_almost_equal(values, [11.0, 6.0, 16.0])

    def test_zero_levels_ignored_without_zero_method(self):
        for pre_zero, data_zero in ((0, 0), (500, -800), (-32768, 32767)):
            with tempfile.TemporaryDirectory() as dirname:
                generate_dts_export(
                    dirname,
                    [
                        dict(
                            samples=[1, 2, 3],
                            header=dict(
                                scale_factor_mv=3.0,
                                scale_factor_eu=1.5,
                                pre_test_zero_level=pre_zero,
                                data_zero_level=data_zero,
                            ),
                            attributes=dict(ZeroMethod="None", InitialEu="-1"),
                        )
                    ],
                )
                reader = DtsRawIO(dirname=dirname)
                reader.parse_header()
                assert_array_almost_equal(reader.get_scaled_stream(1).read(), [1.0, 3.0, 5.0])

    def test_excitation_and_inversion(self):
        header = dict(scale_factor_mv=10.0, scale_factor_eu=1.0)
        generate_dts_export(
            self.dirname,
            [
                # not proportional: excitation is 1 whatever the voltages
                dict(samples=[1], header=header, attributes=dict(
                    ProportionalToExcitation="False", FactoryExcitationVoltage="2", MeasuredExcitationVoltage="4")),
                # proportional: factory excitation wins
                dict(samples=[1], header=header, attributes=dict(
                    ProportionalToExcitation="True", FactoryExcitationVoltage="2", MeasuredExcitationVoltage="4")),
                # proportional without factory value: measured excitation
                dict(samples=[1], header=header, attributes=dict(
                    ProportionalToExcitation="True", FactoryExcitationVoltage=None, MeasuredExcitationVoltage="4")),
                # inverted
                dict(samples=[1], header=header, attributes=dict(IsInverted="True")),
            ],
        )
        reader = self.open_reader()
        self.assertEqual([reader.get_channel(i).excitation for i in (1, 2, 3, 4)], [1.0, 2.0, 4.0, 1.0])
        self.assertEqual(reader.get_channel(4).scale_factor_mv, -10.0)
        values = [reader.get_scaled_stream(i).read()[0] for i in (1, 2, 3, 4)]
        assert_array_almost_equal(values, [10.0, 5.0, 2.5, -10.0])
        assert_array_almost_equal(reader.header["signal_channels"]["gain"], [10.0, 5.0, 2.5, -10.0])

    def test_time_of_first_sample(self):
        generate_dts_export(
            self.dirname,
            [
                dict(samples=np.arange(100), header=dict(trigger_count=1, first_trigger_sample=50, sample_rate=100.0)),
                dict(samples=np.arange(100), header=dict(trigger_count=0, sample_rate=100.0)),
            ],
            module_sizes=[1, 1],
            start_records=[-150, 20],
        )
        reader = self.open_reader()
        self.assertAlmostEqual(reader.get_time_of_first_sample(1), -2.0)
        self.assertAlmostEqual(reader.get_time_of_first_sample(1, start=10), -1.9)
        self.assertAlmostEqual(reader.get_time_of_first_sample(2), 0.2)

        stream = reader.get_scaled_stream(1, SampleRange(10, 30))
        self.assertEqual(stream.sampling_rate, 100.0 * pq.Hz)
        self.assertAlmostEqual(float(stream.t_start.rescale(pq.s).magnitude), -1.9)
        self.assertAlmostEqual(float(stream.t_stop.rescale(pq.s).magnitude), -1.7)
        self.assertAlmostEqual(float(stream.sampling_period.magnitude), 0.01)


class TestDtsRawIORegistry(BaseDtsTest):
    def test_header_and_repr(self):
        generate_dts_export(self.dirname, [dict(samples=np.arange(i + 5)) for i in range(3)])
        reader = self.open_reader()
        self.assertEqual(reader.channel_count(), 3)
        self.assertEqual(reader.signal_channels_count(), 3)
        signal_channels = reader.header["signal_channels"]
        assert_array_equal(signal_channels["name"], ["Sensor 1", "Sensor 2", "Sensor 3"])
        assert_array_equal(signal_channels["id"], ["1", "2", "3"])
        assert_array_equal(signal_channels["point_count"], [5, 6, 7])
        assert_array_equal(signal_channels["units"], ["g", "g", "g"])
        self.assertEqual(reader.get_signal_size(3), 7)
        self.assertEqual(reader.get_signal_sampling_rate(1), 1000.0)
        self.assertEqual(reader.warnings, [])
        txt = repr(reader)
        self.assertIn("DtsRawIO", txt)
        self.assertIn("Sensor 2", txt)

    def test_chn_files_in_padded_order(self):
        channels = [dict(samples=[i]) for i in range(1, 11)]
        generate_dts_export(self.dirname, channels)
        reader = self.open_reader()
        self.assertEqual([p.name for p in reader.chn_filenames], [f"CH{i}.chn" for i in range(1, 11)])
        for i in range(1, 11):
            assert_array_equal(reader.get_analogsignal_chunk(i), [i])
            self.assertEqual(reader.get_channel(i).name, f"Sensor {i}")

    def test_count_mismatch(self):
        generate_dts_export(self.dirname, [dict(samples=[1]), dict(samples=[2])])
        (self.dirname / "CH2.chn").unlink()
        with self.assertRaises(ChannelCountMismatchError) as cm:
            self.open_reader()
        self.assertEqual(cm.exception.nb_header, 1)
        self.assertEqual(cm.exception.nb_metadata, 2)

    def test_bad_magic_aborts(self):
        generate_dts_export(self.dirname, [dict(samples=[1]), dict(samples=[2])])
        with open(self.dirname / "CH2.chn", "r+b") as f:
            f.write(b"\x00\x00\x00\x00")
        self.assertRaises(BadMagicError, self.open_reader)

    def test_missing_attributes_are_aggregated(self):
        generate_dts_export(
            self.dirname,
            [
                dict(samples=[1], attributes=dict(InitialEu=None)),
                dict(samples=[1], attributes=dict(
                    ProportionalToExcitation="True", FactoryExcitationVoltage=None, MeasuredExcitationVoltage=None)),
                dict(samples=[1], attributes=dict(ProportionalToExcitation="True", FactoryExcitationVoltage="0")),
                dict(samples=[1], header=dict(sample_rate=0.0)),
            ],
        )
        with self.assertRaises(MissingAttributeError) as cm:
            self.open_reader()
        problems = cm.exception.problems
        self.assertEqual(len(problems), 4)
        self.assertTrue(problems[0].startswith("channel 1"))
        self.assertIn("InitialEu", problems[0])
        self.assertIn("channel 2", problems[1])
        self.assertIn("channel 3", problems[2])
        self.assertIn("sample rate", problems[3])

    def test_display_order_check(self):
        generate_dts_export(
            self.dirname,
            [
                dict(samples=[1], attributes=dict(AbsoluteDisplayOrder="2")),
                dict(samples=[1], attributes=dict(AbsoluteDisplayOrder="1")),
            ],
        )
        reader = self.open_reader()
        self.assertEqual(len(reader.warnings), 1)
        self.assertIn("AbsoluteDisplayOrder", reader.warnings[0])
        self.assertRaises(ChannelOrderError, self.open_reader, strict_order=True)

    def test_bit_length_warning(self):
        generate_dts_export(self.dirname, [dict(samples=[1], header=dict(bit_length=24))])
        reader = self.open_reader()
        self.assertEqual(len(reader.warnings), 1)
        self.assertIn("bit length", reader.warnings[0])

    def test_find_channels(self):
        generate_dts_export(
            self.dirname,
            [
                dict(samples=[1], attributes=dict(Description="Head X", SerialNumber="A1")),
                dict(samples=[1], attributes=dict(Description="", SerialNumber="A2")),
                dict(samples=[1], attributes=dict(Description="", SerialNumber="")),
            ],
        )
        reader = self.open_reader()
        self.assertEqual(reader.find_channels("Head X"), [1])
        self.assertEqual(reader.find_channels("head x"), [])
        self.assertEqual(reader.find_channels("A1"), [1])
        self.assertEqual(reader.find_channels("A2"), [2])
        self.assertEqual([c.name for c in reader.channels], ["Head X", "A2", "Channel_3"])
        assert_array_equal(reader.channel_name_to_index(["A2", "Head X"]), [2, 1])

    def test_track_metadata(self):
        generate_dts_export(self.dirname, [dict(samples=[1, 2], attributes=dict(Sensitivity="0.25", Eu="N"))])
        (track,) = self.open_reader().track_metadata()
        self.assertEqual(track["index"], 1)
        self.assertEqual(track["name"], "Sensor 1")
        self.assertEqual(track["serial_number"], "SN0001")
        self.assertEqual(track["eu"], "N")
        self.assertEqual(track["sensitivity"], 0.25)
        self.assertEqual(track["point_count"], 2)

    def test_get_rawio(self):
        generate_dts_export(self.dirname, [dict(samples=[1])])
        self.assertIs(get_rawio(self.dirname), DtsRawIO)
        self.assertIs(get_rawio("export.chn"), DtsRawIO)
        self.assertIsNone(get_rawio("export.plx"))

    def test_channel_index_bounds(self):
        generate_dts_export(self.dirname, [dict(samples=[1])])
        reader = self.open_reader()
        self.assertRaises(ValueError, reader.get_channel, 0)
        self.assertRaises(ValueError, reader.get_channel, 2)


class TestDtsRawIORanges(BaseDtsTest):
    def setUp(self):
        super().setUp()
        generate_dts_export(
            self.dirname,
            [
                dict(samples=np.arange(1000), header=dict(data_start=4096 + 10)),
                dict(samples=np.arange(600)),
                dict(samples=np.arange(800)),
            ],
        )
        self.reader = DtsRawIO(dirname=self.dirname, chunk_size=64)
        self.reader.parse_header()

    def test_full_and_narrow_ranges(self):
        stream = self.reader.get_scaled_stream(1)
        self.assertEqual(len(stream), 1000)
        assert_array_equal(stream.read(), np.arange(1000))
        stream = self.reader.get_scaled_stream(1, SampleRange(100, 350))
        self.assertEqual(len(stream), 250)
        assert_array_equal(stream.read(), np.arange(100, 350))

    def test_chunks_cover_the_range(self):
        stream = self.reader.get_scaled_stream(1, SampleRange(5, 300))
        chunks = list(stream)
        self.assertEqual(max(c.size for c in chunks), 64)
        assert_array_equal(np.concatenate(chunks), np.arange(5, 300))
        # a stream can be iterated again
        assert_array_equal(np.concatenate(list(stream)), np.arange(5, 300))

    def test_raw_chunk_with_data_start_gap(self):
        assert_array_equal(self.reader.get_analogsignal_chunk(1, 990, 1000), np.arange(990, 1000))
        self.assertEqual(self.reader.get_analogsignal_chunk(1, 10, 10).size, 0)
        self.assertRaises(IndexError, self.reader.get_analogsignal_chunk, 1, 0, 1001)

    def test_out_of_bounds(self):
        with self.assertRaises(RangeOutOfBoundsError) as cm:
            self.reader.get_scaled_stream(2, SampleRange(0, 700))
        self.assertEqual(cm.exception.channel_index, 2)
        self.assertEqual(cm.exception.point_count, 600)
        self.assertIn("Sensor 2", str(cm.exception))
        self.assertRaises(RangeOutOfBoundsError, self.reader.get_scaled_stream, 1, SampleRange(1200, None))

    def test_batch_is_clamped_to_shortest(self):
        streams = self.reader.get_scaled_streams([1, 2, 3])
        self.assertEqual([len(s) for s in streams], [600, 600, 600])
        self.assertEqual(self.reader.batch_length([1, 3]), 800)
        self.assertEqual(self.reader.batch_length([1, 3], SampleRange(100, None)), 700)
        self.assertEqual(self.reader.batch_length([1, 2, 3], SampleRange(50, 150)), 100)
        self.assertRaises(RangeOutOfBoundsError, self.reader.batch_length, [1, 2], SampleRange(0, 700))


if __name__ == "__main__":
    unittest.main()
