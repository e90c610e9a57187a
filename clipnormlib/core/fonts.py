#!/usr/bin/env python3

"""
Caption font lookup and sizing.
"""

# Standard Library
import os

# PIP3 modules
import PIL.ImageFont

# local repo modules
from clipnormlib.core.utils import EnvironmentMissingError

#============================================

FONT_CANDIDATES = (
	"/Library/Fonts/Arial Bold.ttf",
	"/Library/Fonts/Arial.ttf",
	"/System/Library/Fonts/Supplemental/Arial Bold.ttf",
	"/System/Library/Fonts/Supplemental/Arial.ttf",
	"/System/Library/Fonts/Helvetica.ttc",
	"/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
	"/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
	"/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
	"/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
	"/usr/share/fonts/truetype/freefont/FreeSansBold.ttf",
	"/usr/share/fonts/dejavu-sans-fonts/DejaVuSans-Bold.ttf",
	"/usr/local/share/fonts/DejaVuSans.ttf",
	"C:/Windows/Fonts/arialbd.ttf",
	"C:/Windows/Fonts/arial.ttf",
)

MIN_FONT_SIZE = 12

#============================================

def resolve_font(extra_candidates: tuple = ()) -> str:
	"""
	Return the first caption font that exists on disk.

	Args:
		extra_candidates: Paths tried before the built-in list.

	Returns:
		str: Font file path.
	"""
	candidates = list(extra_candidates) + list(FONT_CANDIDATES)
	for path in candidates:
		if os.path.isfile(path):
			return path
	raise EnvironmentMissingError(
		"no caption font found; install DejaVu Sans or Liberation Sans, "
		"or list a .ttf path under settings.caption.font_candidates"
	)

#============================================

def measure_text_width(font_file: str, font_size: int, text: str) -> int:
	font = PIL.ImageFont.truetype(font_file, font_size)
	bbox = font.getbbox(text)
	return bbox[2] - bbox[0]

#============================================

def fit_font_size(font_file: str, font_size: int, text: str,
	max_width: int) -> int:
	"""
	Shrink the caption font size until the text fits max_width.

	Returns font_size unchanged when the font cannot be measured.
	"""
	if text == "" or max_width <= 0:
		return font_size
	size = int(font_size)
	try:
		while size > MIN_FONT_SIZE and measure_text_width(font_file, size, text) > max_width:
			size -= 2
	except OSError:
		return font_size
	return max(size, MIN_FONT_SIZE)
