"""Protected derivative rendering for uploaded photos."""

from __future__ import annotations

import logging
from pathlib import Path

from PIL import Image, ImageDraw, ImageFont, ImageOps

logger = logging.getLogger(__name__)

CORNER_FONT_SIZE = 24
CENTRE_FONT_SIZE = 48
CORNER_MARGIN = 20
CENTRE_OPACITY = 26  # ~0.1 of 255
SHADOW_OFFSET = 2
DERIVED_PREFIX = "watermarked-"
JPEG_QUALITY = 90


def _font(size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
	try:
		return ImageFont.truetype("DejaVuSans.ttf", size)
	except OSError:
		return ImageFont.load_default(size=size)


def _flatten(img: Image.Image) -> Image.Image:
	img = ImageOps.exif_transpose(img)
	if img.mode != "RGBA":
		img = img.convert("RGBA")
	return img


class AssetDeriver:
	"""Renders the watermarked copy of a raw upload.

	Raw files are read from ``original_dir`` and derivatives are written to
	``protected_dir``, the only directory served to clients.
	"""

	def __init__(self, original_dir: Path | str, protected_dir: Path | str, *, label: str = "PhotoTrade") -> None:
		self.original_dir = Path(original_dir)
		self.protected_dir = Path(protected_dir)
		self.label = label

	def ensure_dirs(self) -> None:
		self.original_dir.mkdir(parents=True, exist_ok=True)
		self.protected_dir.mkdir(parents=True, exist_ok=True)

	def caption(self, username: str) -> str:
		return f"© {username} - {self.label}"

	def derived_name(self, raw_filename: str) -> str:
		return f"{DERIVED_PREFIX}{raw_filename}"

	def derive(self, raw_filename: str, username: str) -> str:
		"""Write the derivative for ``raw_filename`` and return its filename.

		Blocking; call through ``asyncio.to_thread``.
		"""
		source = self.original_dir / raw_filename
		target_name = self.derived_name(raw_filename)
		target = self.protected_dir / target_name
		caption = self.caption(username)

		with Image.open(source) as img:
			base = _flatten(img)
		width, height = base.size

		centre = Image.new("RGBA", base.size, (255, 255, 255, 0))
		ImageDraw.Draw(centre).text(
			(width / 2, height / 2),
			caption,
			font=_font(CENTRE_FONT_SIZE),
			fill=(255, 255, 255, CENTRE_OPACITY),
			anchor="mm",
		)
		centre = centre.rotate(30, resample=Image.Resampling.BICUBIC, center=(width / 2, height / 2))

		corner = Image.new("RGBA", base.size, (255, 255, 255, 0))
		draw = ImageDraw.Draw(corner)
		corner_font = _font(CORNER_FONT_SIZE)
		anchor_xy = (width - CORNER_MARGIN, height - CORNER_MARGIN)
		draw.text(
			(anchor_xy[0] + SHADOW_OFFSET, anchor_xy[1] + SHADOW_OFFSET),
			caption,
			font=corner_font,
			fill=(0, 0, 0, 128),
			anchor="rs",
		)
		draw.text(anchor_xy, caption, font=corner_font, fill=(255, 255, 255, 255), anchor="rs")

		composed = Image.alpha_composite(Image.alpha_composite(base, centre), corner)
		self.protected_dir.mkdir(parents=True, exist_ok=True)
		composed.convert("RGB").save(target, "JPEG", quality=JPEG_QUALITY)
		logger.info("derivative written", extra={"raw": raw_filename, "derived": target_name})
		return target_name
