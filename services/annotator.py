"""Click annotator service.

Burns a visible click marker into a page image so the edit model can see
where the user clicked. The marker is a red filled circle with a white
outline over a soft drop shadow, sized relative to the smaller image
dimension with a floor so it stays visible on small images.

Optionally, text the user typed into detected input fields is drawn
inside those fields first, so the edit model sees the filled form.

Public class: `ClickAnnotator`

Example:
    annotator = ClickAnnotator()
    marked = annotator.annotate(session.current_image, 50, 10)
"""
from __future__ import annotations

import io
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from PIL import Image, ImageDraw, ImageFilter, ImageFont

from models.encoded_image import EncodedImage
from models.session_models import InputFieldRegion


@dataclass(frozen=True)
class TextOverlay:
    """Text typed by the user into one detected input field."""

    region: InputFieldRegion
    text: str


class ClickAnnotator:
    """Draw click markers (and typed-text overlays) onto encoded images.

    Args:
        radius_fraction: Marker radius as a fraction of min(width, height).
        min_radius: Smallest marker radius in pixels.
        outline_width: Width of the white outline in pixels.
        fill: RGB fill color of the marker.
        outline: RGB outline color of the marker.
        shadow_offset: Pixel offset of the drop shadow.
        shadow_blur: Gaussian blur radius of the drop shadow.
    """

    def __init__(
        self,
        radius_fraction: float = 0.012,
        min_radius: int = 10,
        outline_width: int = 3,
        fill: Tuple[int, int, int] = (239, 68, 68),
        outline: Tuple[int, int, int] = (255, 255, 255),
        shadow_offset: int = 2,
        shadow_blur: float = 4.0,
    ):
        self.radius_fraction = radius_fraction
        self.min_radius = min_radius
        self.outline_width = outline_width
        self.fill = fill
        self.outline = outline
        self.shadow_offset = shadow_offset
        self.shadow_blur = shadow_blur

    def marker_radius(self, width: int, height: int) -> int:
        """Return the marker radius in pixels for an image of the given size."""
        return max(self.min_radius, round(min(width, height) * self.radius_fraction))

    @staticmethod
    def to_pixels(width: int, height: int, x_percent: float, y_percent: float) -> Tuple[int, int]:
        """Convert percentage coordinates to pixel coordinates of this image."""
        px = min(width - 1, max(0, round(x_percent / 100.0 * width)))
        py = min(height - 1, max(0, round(y_percent / 100.0 * height)))
        return px, py

    def annotate(
        self,
        image: EncodedImage,
        x_percent: float,
        y_percent: float,
        overlays: Optional[Sequence[TextOverlay]] = None,
    ) -> EncodedImage:
        """Return a new PNG with the click marker drawn at the given position.

        Args:
            image: Source image; never modified.
            x_percent: Horizontal click position, 0-100 of the image width.
            y_percent: Vertical click position, 0-100 of the image height.
            overlays: Optional typed-text overlays drawn before the marker.

        Returns:
            A PNG `EncodedImage` with the same pixel dimensions as `image`.

        Raises:
            ValueError: If coordinates are out of range or the bytes are not an image.
        """
        if not (0 <= x_percent <= 100 and 0 <= y_percent <= 100):
            raise ValueError("Click coordinates must be within 0-100")

        try:
            src = Image.open(io.BytesIO(image.data))
            src.load()
        except Exception as exc:
            raise ValueError("Image bytes are not a supported image format") from exc

        canvas = src.convert("RGBA")
        width, height = canvas.size

        if overlays:
            self._draw_overlays(canvas, overlays)

        cx, cy = self.to_pixels(width, height, x_percent, y_percent)
        radius = self.marker_radius(width, height)
        outer = radius + self.outline_width

        # Shadow first so the marker sits on top of it
        shadow_mask = Image.new("L", canvas.size, 0)
        ImageDraw.Draw(shadow_mask).ellipse(
            (
                cx - outer + self.shadow_offset,
                cy - outer + self.shadow_offset,
                cx + outer + self.shadow_offset,
                cy + outer + self.shadow_offset,
            ),
            fill=140,
        )
        shadow_mask = shadow_mask.filter(ImageFilter.GaussianBlur(self.shadow_blur))
        shadow = Image.new("RGBA", canvas.size, (0, 0, 0, 255))
        canvas = Image.composite(shadow, canvas, shadow_mask)

        draw = ImageDraw.Draw(canvas)
        draw.ellipse((cx - outer, cy - outer, cx + outer, cy + outer), fill=self.outline + (255,))
        draw.ellipse((cx - radius, cy - radius, cx + radius, cy + radius), fill=self.fill + (255,))

        if "A" not in src.getbands():
            canvas = canvas.convert("RGB")

        out_io = io.BytesIO()
        canvas.save(out_io, format="PNG")
        return EncodedImage(data=out_io.getvalue(), mime_type="image/png")

    def _draw_overlays(self, canvas: Image.Image, overlays: Sequence[TextOverlay]) -> None:
        """Draw typed text inside input regions on a white backing box."""
        width, height = canvas.size
        draw = ImageDraw.Draw(canvas)
        for overlay in overlays:
            text = overlay.text.strip()
            if not text:
                continue
            region = overlay.region
            field_height = region.height * height
            font_size = max(8, int(field_height * 0.6))
            font = _load_font(font_size)
            left = region.x * width + 5
            middle = region.y * height + field_height / 2
            _, text_top, _, text_bottom = draw.textbbox((0, 0), text, font=font)
            top = middle - (text_bottom - text_top) / 2 - text_top
            bbox = draw.textbbox((left, top), text, font=font)
            draw.rectangle(
                (bbox[0] - 2, bbox[1] - 2, bbox[2] + 2, bbox[3] + 2),
                fill=(255, 255, 255, 230),
            )
            draw.text((left, top), text, font=font, fill=(0, 0, 0, 255))


def _load_font(size: int) -> ImageFont.ImageFont:
    try:
        return ImageFont.truetype("DejaVuSans-Bold.ttf", size)
    except OSError:
        return ImageFont.load_default(size=size)
