#!/usr/bin/env python3

"""
Caption and stabilization flags derived from clip filenames.

Filename convention:
	Caption-Text_anything.mp4       caption from text before the first underscore
	Caption-Text (anything).mp4     caption from text before " ("
	Caption-Text.mp4                caption from the whole stem
Dashes in the caption become spaces. A "NoStable" token (any case) after the
underscore or inside the parentheses turns off stabilization for the clip.
"""

# Standard Library
import os

# local repo modules
from clipnormlib.core.records import FilenameInfo

#============================================

NO_STABLE_MARKER = "nostable"
DASH_CHARACTERS = ("-", "–", "—")

#============================================

def _stem(filename: str) -> str:
	base = os.path.basename(filename)
	stem, _ext = os.path.splitext(base)
	return stem

#============================================

def _has_underscore_prefix(stem: str) -> bool:
	return "_" in stem and clean_caption(_underscore_prefix(stem)) != ""

#============================================

def _underscore_prefix(stem: str) -> str:
	return stem.split("_", 1)[0]

#============================================

def _has_paren_prefix(stem: str) -> bool:
	return " (" in stem and clean_caption(_paren_prefix(stem)) != ""

#============================================

def _paren_prefix(stem: str) -> str:
	return stem.split(" (", 1)[0]

#============================================

# (name, predicate, extractor), evaluated in order, first match wins
CAPTION_RULES = (
	("underscore", _has_underscore_prefix, _underscore_prefix),
	("parenthesis", _has_paren_prefix, _paren_prefix),
	("stem", lambda stem: True, lambda stem: stem),
)

#============================================

def marker_segments(stem: str) -> list:
	"""
	Return the filename parts that may carry the stabilization marker.

	Args:
		stem: Filename without directory or extension.

	Returns:
		list: Text after the first underscore and text inside the
			parentheses following " (", where present.
	"""
	segments = []
	if "_" in stem:
		segments.append(stem.split("_", 1)[1])
	if " (" in stem:
		inner = stem.split(" (", 1)[1]
		if ")" in inner:
			inner = inner[:inner.index(")")]
		segments.append(inner)
	return segments

#============================================

def clean_caption(text: str) -> str:
	for dash in DASH_CHARACTERS:
		text = text.replace(dash, " ")
	return text.strip()

#============================================

def caption_rule_for(stem: str) -> str:
	for name, predicate, _extractor in CAPTION_RULES:
		if predicate(stem):
			return name
	return "stem"

#============================================

def caption_from_stem(stem: str) -> str:
	for _name, predicate, extractor in CAPTION_RULES:
		if predicate(stem):
			caption = clean_caption(extractor(stem))
			break
	else:
		caption = clean_caption(stem)
	# all-dash stems keep their raw text
	if caption == "":
		caption = stem.strip()
	return caption

#============================================

def has_no_stable_marker(stem: str) -> bool:
	for segment in marker_segments(stem):
		if NO_STABLE_MARKER in segment.lower():
			return True
	return False

#============================================

def classify_filename(filename: str) -> FilenameInfo:
	"""
	Derive caption text and the stabilization skip flag from a filename.

	Args:
		filename: File name or path.

	Returns:
		FilenameInfo: Caption text and skip flag.
	"""
	stem = _stem(filename)
	return FilenameInfo(
		caption_text=caption_from_stem(stem),
		skip_stabilization=has_no_stable_marker(stem),
	)
