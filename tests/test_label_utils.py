import io
import unittest

from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from label_sheet.utils import (
    ELLIPSIS,
    elide_to_width,
    middle_baseline,
    normalize_hex_color,
    rasterize_pdf,
    shrink_fit,
)


class LabelUtilsTests(unittest.TestCase):
    def test_shrink_fit_respects_bounds(self) -> None:
        size = shrink_fit("Hello", 1000, max_font=20, min_font=10, font_name="Helvetica")
        self.assertEqual(size, 20)
        size = shrink_fit("Hello", 1, max_font=20, min_font=10, font_name="Helvetica")
        self.assertGreaterEqual(size, 10)
        self.assertLessEqual(size, 20)

    def test_shrink_fit_result_fits(self) -> None:
        size = shrink_fit("Warehouse 12", 60, max_font=30, min_font=4, font_name="Helvetica-Bold")
        self.assertLessEqual(stringWidth("Warehouse 12", "Helvetica-Bold", size), 60)

    def test_elide_keeps_fitting_text(self) -> None:
        self.assertEqual(elide_to_width("ID-1", "Helvetica", 10, 500), "ID-1")

    def test_elide_trims_with_ellipsis(self) -> None:
        text = "https://example.com/a/very/long/path"
        elided = elide_to_width(text, "Helvetica", 10, 60)
        self.assertTrue(elided.endswith(ELLIPSIS))
        self.assertLessEqual(stringWidth(elided, "Helvetica", 10), 60)
        self.assertTrue(text.startswith(elided[:-1]))

    def test_elide_without_room(self) -> None:
        self.assertEqual(elide_to_width("ID-1", "Helvetica", 10, 1), "")

    def test_middle_baseline_below_middle(self) -> None:
        baseline = middle_baseline(100, "Helvetica", 10)
        self.assertGreater(baseline, 100)
        self.assertLess(baseline, 110)

    def test_normalize_hex_color(self) -> None:
        self.assertEqual(normalize_hex_color("#1a73e8"), "#1A73E8")
        self.assertEqual(normalize_hex_color("ff0000"), "#FF0000")
        self.assertEqual(normalize_hex_color("red"), "#000000")
        self.assertEqual(normalize_hex_color(None), "#000000")
        self.assertEqual(normalize_hex_color("#12345", fallback="#FFFFFF"), "#FFFFFF")

    def test_rasterize_pdf_zoom_and_dpi(self) -> None:
        buffer = io.BytesIO()
        c = canvas.Canvas(buffer, pagesize=(72, 36), invariant=1)
        c.rect(0, 0, 36, 36, stroke=0, fill=1)
        c.showPage()
        c.save()

        zoomed = rasterize_pdf(buffer.getvalue(), zoom=2)
        self.assertEqual(zoomed.size, (144, 72))
        self.assertEqual(zoomed.mode, "RGB")
        self.assertEqual(zoomed.getpixel((10, 36)), (0, 0, 0))
        self.assertEqual(zoomed.getpixel((130, 36)), (255, 255, 255))

        self.assertEqual(rasterize_pdf(buffer.getvalue(), dpi=144).size, (144, 72))


if __name__ == "__main__":
    unittest.main()
