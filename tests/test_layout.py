import unittest

from label_sheet.config import cm_to_px, page_size_px
from label_sheet.errors import LayoutError
from label_sheet.layout import cell_origin, compute_page_geometry, page_capacity, partition
from label_types import Label, PageLayoutSettings


class PageGeometryTests(unittest.TestCase):
    def test_default_label_fills_four_by_nine(self) -> None:
        geometry = page_capacity(PageLayoutSettings())
        self.assertEqual(geometry.columns, 4)
        self.assertEqual(geometry.rows, 9)
        self.assertEqual(geometry.labels_per_page, 36)

    def test_exact_fit_counts_as_fit(self) -> None:
        geometry = page_capacity(
            PageLayoutSettings(label_width_cm=7, spacing_x_cm=0, spacing_y_cm=0)
        )
        self.assertEqual(geometry.columns, 3)

    def test_forced_columns_are_clamped_to_what_fits(self) -> None:
        fewer = page_capacity(PageLayoutSettings(forced_columns_per_row=2))
        self.assertEqual(fewer.columns, 2)
        self.assertEqual(fewer.rows, 9)

        more = page_capacity(PageLayoutSettings(forced_columns_per_row=10))
        self.assertEqual(more.columns, 4)

    def test_zero_spacing_is_allowed(self) -> None:
        geometry = page_capacity(PageLayoutSettings(spacing_x_cm=0, spacing_y_cm=0))
        self.assertEqual((geometry.columns, geometry.rows), (5, 9))

    def test_oversized_label_raises(self) -> None:
        with self.assertRaises(LayoutError):
            page_capacity(PageLayoutSettings(label_width_cm=25))
        with self.assertRaises(LayoutError):
            page_capacity(PageLayoutSettings(label_height_cm=31))

    def test_invalid_settings_rejected(self) -> None:
        with self.assertRaises(ValueError):
            PageLayoutSettings(label_width_cm=0)
        with self.assertRaises(ValueError):
            PageLayoutSettings(spacing_y_cm=-0.1)
        with self.assertRaises(ValueError):
            PageLayoutSettings(forced_columns_per_row=0)

    def test_geometry_in_pixels_matches_dpi(self) -> None:
        width_px, height_px = page_size_px(150)
        geometry = compute_page_geometry(width_px, height_px, PageLayoutSettings(), dpi=150)
        self.assertAlmostEqual(geometry.cell_width_px, cm_to_px(4, 150))
        self.assertAlmostEqual(geometry.pitch_y_px, cm_to_px(3.3, 150))
        self.assertEqual(geometry.labels_per_page, 36)


class PartitionTests(unittest.TestCase):
    def setUp(self) -> None:
        self.geometry = page_capacity(PageLayoutSettings())

    def test_cell_origin_row_major(self) -> None:
        g = self.geometry
        self.assertEqual(cell_origin(0, g), (g.spacing_x_px, g.spacing_y_px))
        x, y = cell_origin(5, g)
        self.assertAlmostEqual(x, g.pitch_x_px + g.spacing_x_px)
        self.assertAlmostEqual(y, g.pitch_y_px + g.spacing_y_px)

    def test_every_label_placed_once_in_order(self) -> None:
        labels = [Label(content=f"ID-{i}") for i in range(1, 41)]
        pages = partition(labels, self.geometry)

        self.assertEqual(len(pages), 2)
        self.assertEqual([len(page.cells) for page in pages], [36, 4])
        self.assertEqual([page.page_index for page in pages], [0, 1])
        placed = [cell.label for page in pages for cell in page.cells]
        self.assertEqual(placed, labels)

    def test_second_page_restarts_at_first_slot(self) -> None:
        labels = [Label(content=f"ID-{i}") for i in range(37)]
        pages = partition(labels, self.geometry)
        first = pages[1].cells[0]
        self.assertEqual((first.x, first.y), cell_origin(0, self.geometry))

    def test_empty_input_has_no_pages(self) -> None:
        self.assertEqual(partition([], self.geometry), [])


if __name__ == "__main__":
    unittest.main()
