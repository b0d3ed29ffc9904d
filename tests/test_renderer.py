from pathlib import Path
import tempfile
import unittest

import numpy as np
from PIL import Image

from eeg_spectroviewer.core.combiner import ReplicaSegmentSource, combine
from eeg_spectroviewer.core.errors import DecodeError
from eeg_spectroviewer.core.model import RecordingMetadata, SpectrogramView
from eeg_spectroviewer.core.palettes import COLOR_MAPS, color_for, interpolate, normalize
from eeg_spectroviewer.core.projector import project
from eeg_spectroviewer.core.renderer import (ERROR_MESSAGE, NO_DATA_MESSAGE, RenderOptions, export_filename,
                                             render, visible_slice)
from eeg_spectroviewer.core.surface import ImageSurface, parse_color
from eeg_spectroviewer.loaders.columnar_loader import decode
from eeg_spectroviewer.utils.synthetic import synthetic_recording

VIRIDIS_FIRST = COLOR_MAPS["viridis"][0]
VIRIDIS_LAST = COLOR_MAPS["viridis"][-1]
NO_AXES = RenderOptions(show_axes=False)


def _view(power, times=None, freqs=None, patient="p", record="r", channel="LL"):
    power = np.asarray(power, dtype=float)
    n_freq, n_time = power.shape
    return SpectrogramView(
        times=np.arange(n_time, dtype=float) if times is None else np.asarray(times, dtype=float),
        frequencies=np.arange(1, n_freq + 1, dtype=float) if freqs is None else np.asarray(freqs, dtype=float),
        power_values=power,
        metadata=RecordingMetadata(patient_id=patient, record_id=record),
        channel=channel,
    )


class DashRecordingSurface(ImageSurface):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.dashed = []

    def clear(self, color=(255, 255, 255)):
        super().clear(color)
        self.dashed = []

    def draw_line(self, x0, y0, x1, y1, color, dash=None):
        if dash:
            self.dashed.append((x0, y0, x1, y1))
        super().draw_line(x0, y0, x1, y1, color, dash)


class PaletteTests(unittest.TestCase):
    def test_endpoints_hit_first_and_last_control_points(self):
        for name, pts in COLOR_MAPS.items():
            rgb = interpolate(np.array([0.0, 1.0]), name)
            self.assertEqual(tuple(pts[0]), tuple(int(c) for c in rgb[0]), name)
            self.assertEqual(tuple(pts[-1]), tuple(int(c) for c in rgb[1]), name)

    def test_midpoint_of_grayscale(self):
        self.assertEqual((128, 128, 128), color_for(0.5, 0.0, 1.0, "grayscale"))

    def test_flat_range_normalises_to_zero(self):
        np.testing.assert_array_equal([0.0, 0.0], normalize(np.array([3.0, 3.0]), 3.0, 3.0))
        self.assertEqual(VIRIDIS_FIRST, color_for(7.0, 7.0, 7.0))

    def test_unknown_palette(self):
        with self.assertRaises(ValueError):
            interpolate(np.array([0.5]), "rainbow")


class ColorParsingTests(unittest.TestCase):
    def test_hex_named_and_tuple_colors(self):
        self.assertEqual((102, 102, 102), parse_color("#666666"))
        self.assertEqual((255, 0, 0), parse_color("#f00"))
        self.assertEqual((255, 255, 255), parse_color("white"))
        self.assertEqual((1, 2, 3), parse_color((1.0, 2.0, 3.0)))

    def test_invalid_color_string(self):
        with self.assertRaises(ValueError):
            parse_color("#zzzzzz")


class RenderOptionsTests(unittest.TestCase):
    def test_validation(self):
        with self.assertRaises(ValueError):
            RenderOptions(color_map="rainbow")
        with self.assertRaises(ValueError):
            RenderOptions(zoom_level=0)
        with self.assertRaises(ValueError):
            RenderOptions(time_range_percent=(60, 40))
        with self.assertRaises(ValueError):
            RenderOptions(time_range_percent=(0, 120))
        with self.assertRaises(ValueError):
            RenderOptions(band="kappa")

    def test_zoom_steps_are_clamped(self):
        opts = RenderOptions(zoom_level=2.9).zoomed_in()
        self.assertEqual(3.0, opts.zoomed_in().zoom_level)
        self.assertAlmostEqual(0.5, RenderOptions(zoom_level=0.6).zoomed_out().zoomed_out().zoom_level)

    def test_from_config(self):
        opts = RenderOptions.from_config({"render": {"color_map": "hot", "time_range_percent": [10, 90],
                                                     "zoom_level": 1.5, "band": "beta"}})
        self.assertEqual("hot", opts.color_map)
        self.assertEqual((10.0, 90.0), opts.time_range_percent)
        self.assertEqual(1.5, opts.zoom_level)
        self.assertEqual("beta", opts.band)
        self.assertEqual(RenderOptions(), RenderOptions.from_config({}))

    def test_from_config_with_empty_render_section(self):
        # a bare "render:" key in YAML loads as None
        self.assertEqual(RenderOptions(), RenderOptions.from_config({"render": None}))
        self.assertEqual(RenderOptions(), RenderOptions.from_config(None))

    def test_visible_slice(self):
        self.assertEqual((0, 10), visible_slice(10, (0, 100)))
        self.assertEqual((0, 5), visible_slice(10, (0, 50)))
        self.assertEqual((2, 8), visible_slice(10, (25, 75)))
        self.assertEqual((0, 0), visible_slice(0, (0, 100)))


class RendererTests(unittest.TestCase):
    def test_constant_power_maps_every_cell_to_first_color(self):
        surface = ImageSurface(40, 20)
        render(_view(np.full((4, 8), 5.0)), surface, NO_AXES)
        pixels = surface.to_array().reshape(-1, 3)
        self.assertTrue(np.all(pixels == np.array(VIRIDIS_FIRST)))

    def test_low_frequency_row_is_drawn_at_the_bottom(self):
        surface = ImageSurface(10, 20)
        render(_view([[0.0], [1.0]]), surface, NO_AXES)
        self.assertEqual(VIRIDIS_FIRST, surface.pixel(5, 15))
        self.assertEqual(VIRIDIS_LAST, surface.pixel(5, 5))

    def test_color_scale_is_local_to_visible_window(self):
        surface = ImageSurface(20, 10)
        # the 1000 column is outside the visible window and must not compress the scale
        render(_view([[0.0, 1.0, 1000.0]]), surface, RenderOptions(time_range_percent=(0, 66), show_axes=False))
        self.assertEqual(VIRIDIS_FIRST, surface.pixel(5, 5))
        self.assertEqual(VIRIDIS_LAST, surface.pixel(15, 5))

    def test_zoom_below_one_leaves_gaps(self):
        surface = ImageSurface(20, 10)
        render(_view([[1.0]]), surface, RenderOptions(zoom_level=0.5, show_axes=False))
        self.assertEqual(VIRIDIS_FIRST, surface.pixel(2, 2))
        self.assertEqual((255, 255, 255), surface.pixel(15, 8))

    def test_axes_labels_come_from_visible_arrays(self):
        surface = ImageSurface(200, 100)
        render(_view(np.arange(20.0).reshape(2, 10), times=np.arange(10) * 0.5, freqs=[4.0, 12.0]),
               surface, RenderOptions(time_range_percent=(50, 100)))
        self.assertTrue(surface.has_text("2.5s"))
        self.assertFalse(surface.has_text("0.0s"))
        self.assertTrue(surface.has_text("4Hz"))

    def test_band_option_restricts_rows(self):
        surface = ImageSurface(10, 10)
        view = _view([[0.0], [5.0], [9.0]], freqs=[2.0, 10.0, 11.0])
        render(view, surface, RenderOptions(band="alpha", show_axes=False))
        # only 10 and 11 Hz remain: bottom half low, top half high
        self.assertEqual(VIRIDIS_FIRST, surface.pixel(5, 8))
        self.assertEqual(VIRIDIS_LAST, surface.pixel(5, 1))

    def test_empty_channel_renders_no_data_indicator(self):
        rec = synthetic_recording(n_times=10, n_freqs=3, channels=("LL",))
        empty = project(rec, "LL")
        empty = SpectrogramView(times=empty.times, frequencies=np.zeros(0), power_values=np.zeros((0, 10)),
                                metadata=empty.metadata, channel="RP")
        surface = ImageSurface(100, 50)
        render(empty, surface)
        self.assertTrue(surface.has_text(NO_DATA_MESSAGE))
        self.assertFalse(surface.has_text(ERROR_MESSAGE))

    def test_none_view_renders_no_data(self):
        surface = ImageSurface(50, 50)
        render(None, surface)
        self.assertTrue(surface.has_text(NO_DATA_MESSAGE))

    def test_ragged_rows_render_error_message_without_raising(self):
        view = SpectrogramView(times=np.array([0.0, 1.0, 2.0]), frequencies=np.array([1.0, 2.0]),
                               power_values=[[1.0, 2.0, 3.0], [1.0, 2.0]], metadata=RecordingMetadata())
        surface = ImageSurface(100, 50)
        with self.assertLogs("eeg_spectroviewer.core.renderer", level="ERROR"):
            render(view, surface)
        self.assertTrue(surface.has_text(ERROR_MESSAGE))

    def test_missing_axis_renders_error_message(self):
        view = SpectrogramView(times=None, frequencies=np.array([1.0]), power_values=[[1.0]],
                               metadata=RecordingMetadata())
        surface = ImageSurface(100, 50)
        with self.assertLogs("eeg_spectroviewer.core.renderer", level="ERROR"):
            render(view, surface)
        self.assertTrue(surface.has_text(ERROR_MESSAGE))

    def test_each_render_is_a_full_redraw(self):
        surface = ImageSurface(40, 20)
        render(_view([[0.0, 1.0]]), surface)
        render(_view(np.full((2, 2), 3.0)), surface, NO_AXES)
        self.assertTrue(np.all(surface.to_array().reshape(-1, 3) == np.array(VIRIDIS_FIRST)))
        self.assertEqual([], surface.texts)

    def test_combined_view_draws_dividers_and_label(self):
        rec = synthetic_recording(n_times=10, n_freqs=4)
        combined = combine(rec, "LL", [0.0, 10.0, 20.0], ReplicaSegmentSource())
        surface = DashRecordingSurface(300, 100)
        render(combined, surface)
        self.assertEqual(2, len(surface.dashed))
        self.assertTrue(surface.has_text("Combined view: 3 segments"))
        x_first = surface.dashed[0][0]
        self.assertAlmostEqual(10 * 300 / 30, x_first)

    def test_dividers_outside_visible_window_are_skipped(self):
        rec = synthetic_recording(n_times=10, n_freqs=4)
        combined = combine(rec, "LL", [0.0, 10.0, 20.0])
        surface = DashRecordingSurface(300, 100)
        render(combined, surface, RenderOptions(time_range_percent=(0, 30)))
        self.assertEqual([], surface.dashed)
        self.assertTrue(surface.has_text("Combined view"))

    def test_decode_failure_leaves_other_views_untouched(self):
        rec = synthetic_recording(n_times=20, n_freqs=6)
        surface_a = ImageSurface(120, 60)
        render(project(rec, "LL"), surface_a)
        before = surface_a.to_array()

        surface_b = ImageSurface(120, 60)
        with self.assertRaises(DecodeError):
            decode(np.random.default_rng(7).bytes(10))
        render(None, surface_b)

        np.testing.assert_array_equal(before, surface_a.to_array())
        self.assertTrue(surface_b.has_text(NO_DATA_MESSAGE))

    def test_export_png(self):
        rec = synthetic_recording("1234", "EEG9")
        view = project(rec, "LP")
        self.assertEqual("spectrogram_1234_EEG9_LP.png", export_filename(view))
        self.assertEqual("spectrogram_patient_record_LL.png", export_filename(_view([[1.0]], patient="", record="")))
        surface = ImageSurface(64, 32)
        render(view, surface)
        with tempfile.TemporaryDirectory() as tmpdir:
            out = surface.save(Path(tmpdir) / export_filename(view))
            with Image.open(out) as img:
                self.assertEqual((64, 32), img.size)
                self.assertEqual("PNG", img.format)


if __name__ == "__main__":
    unittest.main()
