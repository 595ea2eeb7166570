import base64
import io
import unittest

from PIL import Image

from label_sheet.assets import decode_data_uri, resolve_style
from label_sheet.errors import AssetLoadError
from label_types import FillMode, LogoPosition, PrintSettings


def _png_base64(color: str = "red", size: tuple[int, int] = (8, 6)) -> str:
    buffer = io.BytesIO()
    Image.new("RGBA", size, color).save(buffer, format="PNG")
    return base64.b64encode(buffer.getvalue()).decode("ascii")


class DecodeDataUriTests(unittest.TestCase):
    def test_data_uri(self) -> None:
        image = decode_data_uri(f"data:image/png;base64,{_png_base64()}")
        self.assertEqual(image.size, (8, 6))

    def test_bare_base64(self) -> None:
        self.assertEqual(decode_data_uri(_png_base64(size=(3, 3))).size, (3, 3))

    def test_invalid_inputs(self) -> None:
        for value in ("", "data:image/png;base64", "data:image/png,abc", "data:image/png;base64,bm90IGFuIGltYWdl"):
            with self.subTest(value=value):
                with self.assertRaises(AssetLoadError):
                    decode_data_uri(value)


class ResolveStyleTests(unittest.TestCase):
    def test_plain_settings(self) -> None:
        style = resolve_style(PrintSettings(code_color="1a73e8", brand_name="ACME"))
        self.assertEqual(style.foreground_color, "#1A73E8")
        self.assertEqual(style.brand_text, "ACME")
        self.assertFalse(style.logo.active)
        self.assertIsNone(style.pattern_image)

    def test_logo_decoded_only_when_shown(self) -> None:
        uri = f"data:image/png;base64,{_png_base64()}"
        hidden = resolve_style(PrintSettings(logo_image=uri, show_logo=False))
        self.assertIsNone(hidden.logo.image)

        shown = resolve_style(
            PrintSettings(logo_image=uri, show_logo=True, logo_position=LogoPosition.TOP_RIGHT)
        )
        self.assertTrue(shown.logo.active)
        self.assertIs(shown.logo.position, LogoPosition.TOP_RIGHT)

    def test_pattern_decoded_only_in_image_mode(self) -> None:
        uri = _png_base64("green")
        self.assertIsNone(resolve_style(PrintSettings(qr_pattern_image=uri)).pattern_image)
        style = resolve_style(PrintSettings(qr_pattern_image=uri, qr_fill_mode=FillMode.IMAGE))
        self.assertIsNotNone(style.pattern_image)
        self.assertIs(style.effective_fill_mode, FillMode.IMAGE)

    def test_broken_assets_degrade(self) -> None:
        settings = PrintSettings(
            logo_image="data:image/png;base64,broken",
            show_logo=True,
            qr_pattern_image="broken",
            qr_fill_mode=FillMode.IMAGE,
        )
        with self.assertLogs("label_sheet.assets", level="WARNING") as logs:
            style = resolve_style(settings)
        self.assertEqual(len(logs.records), 2)
        self.assertFalse(style.logo.active)
        self.assertIs(style.effective_fill_mode, FillMode.COLOR)


if __name__ == "__main__":
    unittest.main()
