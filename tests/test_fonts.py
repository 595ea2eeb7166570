import os
import shutil
import tempfile
import unittest
from io import BytesIO
from pathlib import Path
from unittest.mock import patch

import reportlab
from fontTools.fontBuilder import FontBuilder
from fontTools.pens.ttGlyphPen import TTGlyphPen
from fontTools.ttLib import TTFont
from reportlab.pdfbase.pdfmetrics import stringWidth

from fonts import (
    FontConfig,
    FontRegistry,
    FontSpec,
    FontUnavailableError,
    VariableFontManager,
    build_font_config,
)

REPORTLAB_FONTS = Path(reportlab.__file__).resolve().parent / "fonts"


def _variable_font_bytes(family: str) -> bytes:
    """A three-glyph TrueType font with a 100-900 wght axis."""
    pen = TTGlyphPen(None)
    pen.moveTo((100, 0))
    pen.lineTo((100, 700))
    pen.lineTo((500, 700))
    pen.lineTo((500, 0))
    pen.closePath()
    box = pen.glyph()
    empty = TTGlyphPen(None).glyph()

    glyph_order = [".notdef", "space", "A"]
    builder = FontBuilder(1000, isTTF=True)
    builder.setupGlyphOrder(glyph_order)
    builder.setupCharacterMap({32: "space", 65: "A"})
    builder.setupGlyf({".notdef": box, "space": empty, "A": box})
    builder.setupMaxp()
    glyf = builder.font["glyf"]
    builder.setupHorizontalMetrics({name: (600, getattr(glyf[name], "xMin", 0)) for name in glyph_order})
    builder.setupHorizontalHeader(ascent=800, descent=-200)
    builder.setupNameTable(
        {"familyName": family, "styleName": "Regular", "psName": f"{family}-Regular"}
    )
    builder.setupOS2(sTypoAscender=800, sTypoDescender=-200, usWinAscent=800, usWinDescent=200)
    builder.setupPost()
    builder.setupFvar([("wght", 100, 400, 900, "Weight")], [])

    buffer = BytesIO()
    builder.save(buffer)
    return buffer.getvalue()


class FontDirTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.root = Path(self._tmp.name)
        env = patch.dict(os.environ, {"CODESHEET_FONTS_DIR": str(self.root)})
        env.start()
        self.addCleanup(env.stop)


class BuiltinFontTests(unittest.TestCase):
    def test_builtin_family(self) -> None:
        self.assertEqual(build_font_config("Helvetica"), FontConfig(brand="Helvetica-Bold", data="Helvetica"))
        self.assertEqual(
            build_font_config("times", FontSpec(weight=400), FontSpec(weight=700)),
            FontConfig(brand="Times-Roman", data="Times-Bold"),
        )

    def test_unknown_family_falls_back(self) -> None:
        with self.assertLogs("fonts", level="WARNING"):
            config = build_font_config("Comic Neue")
        self.assertEqual(config, FontConfig(brand="Helvetica-Bold", data="Helvetica"))


class StaticFontTests(FontDirTestCase):
    def test_weights_map_to_closest_file(self) -> None:
        for name in ("Vera.ttf", "VeraBd.ttf"):
            shutil.copy(REPORTLAB_FONTS / name, self.root / name)

        registry = FontRegistry()
        self.assertEqual(registry.get_font_name("vera", 650), "Vera-w700")
        self.assertEqual(registry.get_font_name("vera", 300), "Vera-w400")
        self.assertGreater(stringWidth("Label", "Vera-w700", 10), 0)

    def test_build_font_config_uses_local_family(self) -> None:
        for name in ("Vera.ttf", "VeraBd.ttf"):
            shutil.copy(REPORTLAB_FONTS / name, self.root / name)
        self.assertEqual(build_font_config("Vera"), FontConfig(brand="Vera-w700", data="Vera-w400"))

    def test_missing_file(self) -> None:
        with self.assertRaises(FontUnavailableError):
            FontRegistry().get_font_name("vera", 400)


class VariableFontTests(FontDirTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.font_path = self.root / "Fixture.ttf"
        self.font_path.write_bytes(_variable_font_bytes("Fixture"))

    def test_instances_are_registered_and_clamped(self) -> None:
        manager = VariableFontManager("Fixture", self.font_path)
        self.assertEqual(manager.font_name_for_weight(700), "Fixture-w700")
        self.assertEqual(manager.font_name_for_weight(2000), "Fixture-w900")
        self.assertEqual(manager.font_name_for_weight(10), "Fixture-w100")
        self.assertAlmostEqual(stringWidth("A", "Fixture-w700", 10), 6.0)

    def test_instance_gets_its_own_postscript_name(self) -> None:
        manager = VariableFontManager("Fixture", self.font_path)
        instance = TTFont(manager._instantiate(700))
        self.assertNotIn("fvar", instance)
        self.assertEqual(instance["name"].getName(6, 3, 1, 0x409).toUnicode(), "Fixture-W700")

    def test_font_without_weight_axis_rejected(self) -> None:
        static = self.root / "Vera.ttf"
        shutil.copy(REPORTLAB_FONTS / "Vera.ttf", static)
        with self.assertRaises(FontUnavailableError):
            VariableFontManager("Vera", static)

    def test_registry_loads_inter_from_fonts_dir(self) -> None:
        (self.root / "InterVariable.ttf").write_bytes(_variable_font_bytes("Inter"))
        self.assertEqual(FontRegistry().get_font_name("inter", 400), "Inter-w400")

    def test_missing_variable_file_falls_back(self) -> None:
        with self.assertLogs("fonts", level="WARNING"):
            config = build_font_config("Inter")
        self.assertEqual(config.data, "Helvetica")


if __name__ == "__main__":
    unittest.main()
