"""
Signature capture surface.

Pointer positions arrive in display coordinates (the size the surface is
shown at) and are scaled per axis onto a fixed-size RGBA image, so the
exported signature does not depend on how large it was drawn on screen.
"""
import base64
import io
from typing import Optional
from PIL import Image, ImageDraw

DEFAULT_WIDTH = 600
DEFAULT_HEIGHT = 200
STROKE_COLOR = (0, 0, 0, 255)
STROKE_WIDTH = 2

Point = tuple[float, float]


class SignatureCanvas:
    def __init__(self, width: int = DEFAULT_WIDTH, height: int = DEFAULT_HEIGHT,
                 display_size: Optional[tuple[float, float]] = None):
        self.width = width
        self.height = height
        self.display_size = display_size or (float(width), float(height))
        self.strokes: list[list[Point]] = []
        self.image_data = ""
        self.drawing = False
        self._new_surface()

    def _new_surface(self) -> None:
        # Transparent background, black strokes
        self._image = Image.new("RGBA", (self.width, self.height), (0, 0, 0, 0))
        self._draw = ImageDraw.Draw(self._image)

    def resize_display(self, width: float, height: float) -> None:
        if width <= 0 or height <= 0:
            raise ValueError("Display size must be positive")
        self.display_size = (float(width), float(height))

    def scale(self, point: Point) -> Point:
        """Map a display-space point onto the surface, clamped to its bounds."""
        display_width, display_height = self.display_size
        x = point[0] * (self.width / display_width)
        y = point[1] * (self.height / display_height)
        return (
            min(max(x, 0.0), float(self.width - 1)),
            min(max(y, 0.0), float(self.height - 1)),
        )

    @property
    def has_ink(self) -> bool:
        return bool(self.strokes)

    def begin_stroke(self, point: Point) -> None:
        start = self.scale(point)
        self.strokes.append([start])
        self.drawing = True
        # A tap with no movement still leaves a dot
        self._draw.point(start, fill=STROKE_COLOR)

    def extend_stroke(self, point: Point) -> None:
        if not self.drawing:
            return
        stroke = self.strokes[-1]
        end = self.scale(point)
        self._draw.line([stroke[-1], end], fill=STROKE_COLOR, width=STROKE_WIDTH)
        stroke.append(end)

    def end_stroke(self) -> str:
        """Finish the current stroke and return the surface as a PNG data URL."""
        self.drawing = False
        self.image_data = self.to_data_url()
        return self.image_data

    def pointer_leave(self) -> Optional[str]:
        if not self.drawing:
            return None
        return self.end_stroke()

    def clear(self) -> None:
        self._new_surface()
        self.strokes = []
        self.image_data = ""
        self.drawing = False

    def to_image(self) -> Image.Image:
        return self._image.copy()

    def to_data_url(self) -> str:
        buffer = io.BytesIO()
        self._image.save(buffer, format="PNG")
        return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")
