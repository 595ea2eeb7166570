import threading
import unittest
from typing import Any

from PIL import Image

from label_sheet.errors import EncodingError
from label_sheet.image_cache import build_cache, cache_signature, distinct_keys
from label_types import Label, StyleSettings, Symbology


class _CountingRenderer:
    def __init__(self, fail_on: frozenset[str] = frozenset(), crash_on: frozenset[str] = frozenset()) -> None:
        self.calls: list[tuple[Symbology, str]] = []
        self.fail_on = fail_on
        self.crash_on = crash_on
        self._lock = threading.Lock()

    def __call__(self, symbology: Symbology, content: str, size_px: int, style: Any, height_px: int | None = None) -> Image.Image:
        with self._lock:
            self.calls.append((symbology, content))
        if content in self.fail_on:
            raise EncodingError(f"cannot encode {content}")
        if content in self.crash_on:
            raise RuntimeError("renderer crashed")
        return Image.new("RGB", (size_px, height_px or size_px), "black")


def _square(symbology: Symbology) -> tuple[int, int]:
    return 40, 40


class BuildCacheTests(unittest.TestCase):
    def test_each_distinct_key_rendered_once(self) -> None:
        labels = [
            Label("A"),
            Label("A"),
            Label("B"),
            Label("A", symbology=Symbology.BARCODE),
            Label("B"),
        ]
        renderer = _CountingRenderer()
        cache = build_cache(labels, StyleSettings(), _square, renderer=renderer)

        self.assertEqual(len(renderer.calls), 3)
        self.assertEqual(sorted(renderer.calls), sorted(set(renderer.calls)))
        self.assertEqual(
            list(cache),
            [(Symbology.QR, "A"), (Symbology.QR, "B"), (Symbology.BARCODE, "A")],
        )

    def test_failures_are_isolated(self) -> None:
        labels = [Label("good"), Label("bad"), Label("boom"), Label("fine")]
        renderer = _CountingRenderer(fail_on=frozenset({"bad"}), crash_on=frozenset({"boom"}))

        with self.assertLogs("label_sheet.image_cache", level="WARNING"):
            cache = build_cache(labels, StyleSettings(), _square, renderer=renderer)

        self.assertIsNone(cache[(Symbology.QR, "bad")])
        self.assertIsNone(cache[(Symbology.QR, "boom")])
        self.assertIsInstance(cache[(Symbology.QR, "good")], Image.Image)
        self.assertIsInstance(cache[(Symbology.QR, "fine")], Image.Image)

    def test_size_for_is_used_per_symbology(self) -> None:
        def size_for(symbology: Symbology) -> tuple[int, int]:
            return (90, 40) if symbology is Symbology.BARCODE else (60, 60)

        cache = build_cache(
            [Label("Q"), Label("B", symbology=Symbology.BARCODE)],
            StyleSettings(),
            size_for,
            renderer=_CountingRenderer(),
        )
        self.assertEqual(cache[(Symbology.QR, "Q")].size, (60, 60))
        self.assertEqual(cache[(Symbology.BARCODE, "B")].size, (90, 40))

    def test_cache_is_read_only(self) -> None:
        cache = build_cache([Label("A")], StyleSettings(), _square, renderer=_CountingRenderer())
        with self.assertRaises(TypeError):
            cache[(Symbology.QR, "Z")] = None  # type: ignore[index]

    def test_empty_labels(self) -> None:
        renderer = _CountingRenderer()
        self.assertEqual(dict(build_cache([], StyleSettings(), _square, renderer=renderer)), {})
        self.assertEqual(renderer.calls, [])


class SignatureTests(unittest.TestCase):
    def test_distinct_keys_keep_first_seen_order(self) -> None:
        labels = [Label("B"), Label("A"), Label("B")]
        self.assertEqual(distinct_keys(labels), [(Symbology.QR, "B"), (Symbology.QR, "A")])

    def test_signature_tracks_pixels_not_repeats(self) -> None:
        style = StyleSettings()
        base = cache_signature([Label("A"), Label("B")], style)

        self.assertEqual(base, cache_signature([Label("A"), Label("B"), Label("A")], style))
        self.assertNotEqual(base, cache_signature([Label("B"), Label("A")], style))
        self.assertNotEqual(base, cache_signature([Label("A"), Label("B")], StyleSettings(foreground_color="#FF0000")))
        self.assertNotEqual(
            base,
            cache_signature([Label("A"), Label("B", symbology=Symbology.DATAMATRIX)], style),
        )

    def test_text_settings_do_not_change_signature(self) -> None:
        labels = [Label("A")]
        self.assertEqual(
            cache_signature(labels, StyleSettings()),
            cache_signature(labels, StyleSettings(brand_text="ACME", show_data_text=True)),
        )


if __name__ == "__main__":
    unittest.main()
