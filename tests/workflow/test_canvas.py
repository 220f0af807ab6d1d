import base64
import io

import pytest
from PIL import Image

from grant_portal.workflow.canvas import SignatureCanvas


def decode(data_url: str) -> Image.Image:
    assert data_url.startswith("data:image/png;base64,")
    return Image.open(io.BytesIO(base64.b64decode(data_url.split(",", 1)[1])))


def test_points_scale_per_axis_from_display_size():
    canvas = SignatureCanvas(600, 200, display_size=(300, 100))
    assert canvas.scale((150, 50)) == (300.0, 100.0)

    canvas.resize_display(1200, 200)
    assert canvas.scale((600, 50)) == (300.0, 50.0)


def test_points_are_clamped_to_surface():
    canvas = SignatureCanvas(600, 200, display_size=(300, 100))
    assert canvas.scale((400, -5)) == (599.0, 0.0)


def test_stroke_produces_png_of_full_surface():
    canvas = SignatureCanvas(600, 200, display_size=(300, 100))
    canvas.begin_stroke((10, 10))
    canvas.extend_stroke((100, 80))
    data_url = canvas.end_stroke()

    image = decode(data_url)
    assert image.size == (600, 200)
    left, top, right, bottom = image.getbbox()
    # Stroke ran from (20, 20) to (200, 160) on the surface
    assert left <= 21 and right >= 199
    assert top <= 21 and bottom >= 159
    assert canvas.image_data == data_url
    assert canvas.has_ink
    assert canvas.strokes == [[(20.0, 20.0), (200.0, 160.0)]]


def test_extend_without_begin_is_ignored():
    canvas = SignatureCanvas()
    canvas.extend_stroke((50, 50))
    assert not canvas.has_ink
    assert canvas.to_image().getbbox() is None


def test_end_stroke_without_strokes_returns_blank_image():
    canvas = SignatureCanvas()
    image = decode(canvas.end_stroke())
    assert image.getbbox() is None
    assert not canvas.has_ink


def test_pointer_leave_ends_active_stroke_only():
    canvas = SignatureCanvas()
    assert canvas.pointer_leave() is None
    assert canvas.image_data == ""

    canvas.begin_stroke((10, 10))
    canvas.extend_stroke((40, 40))
    data_url = canvas.pointer_leave()
    assert data_url and data_url == canvas.image_data
    assert not canvas.drawing

    # Moving after leaving does not draw
    canvas.extend_stroke((300, 150))
    assert canvas.strokes[-1][-1] == (40.0, 40.0)


def test_clear_is_idempotent():
    canvas = SignatureCanvas()
    canvas.begin_stroke((10, 10))
    canvas.extend_stroke((40, 40))
    canvas.end_stroke()

    canvas.clear()
    canvas.clear()

    assert canvas.image_data == ""
    assert not canvas.has_ink
    assert canvas.strokes == []
    assert canvas.to_image().getbbox() is None


def test_resize_display_rejects_empty_size():
    canvas = SignatureCanvas()
    with pytest.raises(ValueError):
        canvas.resize_display(0, 100)


def test_end_stroke_after_clear_has_no_ink():
    canvas = SignatureCanvas()
    canvas.begin_stroke((10, 10))
    canvas.end_stroke()

    canvas.clear()
    data_url = canvas.end_stroke()

    assert data_url
    assert not canvas.has_ink
    assert canvas.strokes == []
