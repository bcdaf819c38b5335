"""Lookup tables and thresholds shared by the smart-folder matchers."""
from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, Optional

MS_PER_DAY = 1000 * 60 * 60 * 24

# File-type taxonomy
VIDEO_EXTENSIONS: FrozenSet[str] = frozenset({"mp4", "mov", "avi", "wmv", "webm", "mkv", "m4v", "3gp", "ts"})
AUDIO_EXTENSIONS: FrozenSet[str] = frozenset({"mp3", "wav", "ogg", "flac", "aac", "m4a"})
FONT_EXTENSIONS: FrozenSet[str] = frozenset({"ttf", "otf", "woff", "ttc"})
PRESENTATION_EXTENSIONS: FrozenSet[str] = frozenset({"ppt", "pptx", "potx", "key"})
EXCEL_EXTENSIONS: FrozenSet[str] = frozenset({"xls", "xlsx"})
WORD_EXTENSIONS: FrozenSet[str] = frozenset({"doc", "docx"})

TYPE_CATEGORIES: Dict[str, FrozenSet[str]] = {
    "video": VIDEO_EXTENSIONS,
    "videos": VIDEO_EXTENSIONS,
    "audio": AUDIO_EXTENSIONS,
    "font": FONT_EXTENSIONS,
    "presentation": PRESENTATION_EXTENSIONS,
    "powerpoint": PRESENTATION_EXTENSIONS,
    "excel": EXCEL_EXTENSIONS,
    "word": WORD_EXTENSIONS,
}

# Bookmark items carry ext "url"; the medium tells streaming sites apart.
URL_EXTENSION = "url"
URL_MEDIA: FrozenSet[str] = frozenset({"youtube", "vimeo", "bilibili"})

# Sentinel used by rating rules for unrated items.
UNRATED = "none"

# Shape classification
PANORAMIC_RATIO = 2.5

# Colour matching. Palette ratios are fractions of the image area.
GRAYSCALE_MIN_RATIO = 0.02
GRAYSCALE_CHANNEL_TOLERANCE = 8
DOMINANT_MIN_RATIO = 0.33
CHANNEL_MAX_DIFF = 96
SIMILAR_THRESHOLD = 20.0
ACCURATE_THRESHOLD = 10.0
CIE76_SLACK = 50.0


class RuleProperty(str, Enum):
    """Closed set of item attributes a rule can test."""

    NAME = "name"
    FOLDER_NAME = "folderName"
    URL = "url"
    ANNOTATION = "annotation"
    WIDTH = "width"
    HEIGHT = "height"
    FILE_SIZE = "fileSize"
    DURATION = "duration"
    BPM = "bpm"
    CREATE_TIME = "createTime"
    MTIME = "mtime"
    BTIME = "btime"
    COMMENTS = "comments"
    TAGS = "tags"
    FOLDERS = "folders"
    TYPE = "type"
    RATING = "rating"
    SHAPE = "shape"
    COLOR = "color"
    CAMERA = "camera"
    ISO = "iso"
    APERTURE = "aperture"
    FOCAL_LENGTH = "focalLength"
    SHUTTER = "shutter"
    TIMESTAMP = "timestamp"
    FONT_ACTIVATED = "fontActivated"

    @classmethod
    def parse(cls, key: object) -> Optional["RuleProperty"]:
        """Return the member for ``key`` or ``None`` for unknown keys."""
        try:
            return cls(key)
        except ValueError:
            return None


STRING_METHODS: FrozenSet[str] = frozenset(
    {"equal", "startWith", "endWith", "contain", "uncontain", "empty", "not-empty", "regex"}
)
NUMBER_METHODS: FrozenSet[str] = frozenset({"=", ">=", "<=", ">", "<", "between"})
DATE_METHODS: FrozenSet[str] = frozenset({"on", "before", "after", "between", "within"})
SET_METHODS: FrozenSet[str] = frozenset({"intersection", "equal", "union", "identity", "empty", "not-empty"})
EQUALITY_METHODS: FrozenSet[str] = frozenset({"equal", "unequal"})
RATING_METHODS: FrozenSet[str] = frozenset({"contain", "equal", "unequal"})
COLOR_METHODS: FrozenSet[str] = frozenset({"similar", "accuracy", "grayscale"})
FONT_METHODS: FrozenSet[str] = frozenset({"activate", "deactivate"})

__all__ = [
    "MS_PER_DAY",
    "VIDEO_EXTENSIONS",
    "AUDIO_EXTENSIONS",
    "FONT_EXTENSIONS",
    "PRESENTATION_EXTENSIONS",
    "EXCEL_EXTENSIONS",
    "WORD_EXTENSIONS",
    "TYPE_CATEGORIES",
    "URL_EXTENSION",
    "URL_MEDIA",
    "UNRATED",
    "PANORAMIC_RATIO",
    "GRAYSCALE_MIN_RATIO",
    "GRAYSCALE_CHANNEL_TOLERANCE",
    "DOMINANT_MIN_RATIO",
    "CHANNEL_MAX_DIFF",
    "SIMILAR_THRESHOLD",
    "ACCURATE_THRESHOLD",
    "CIE76_SLACK",
    "RuleProperty",
    "STRING_METHODS",
    "NUMBER_METHODS",
    "DATE_METHODS",
    "SET_METHODS",
    "EQUALITY_METHODS",
    "RATING_METHODS",
    "COLOR_METHODS",
    "FONT_METHODS",
]
