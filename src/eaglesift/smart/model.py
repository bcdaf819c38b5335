"""Data model for smart folders and the library items they are matched against.

Smart folder definitions and item records arrive as JSON-like mappings using
the library's camelCase keys. The ``from_dict`` loaders here never raise on bad
shapes: anything unusable becomes a missing attribute or a malformed operand,
both of which simply never match.

Rule values come in several shapes (plain text, a ``[min, max]`` pair, a list
of tags, a rating choice list). The shape is decided by the rule's property
and resolved once, when the rule is built, into one of the operand classes
below.
"""
from __future__ import annotations

import math
import re
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from .constants import RuleProperty

__all__ = [
    "MALFORMED",
    "Malformed",
    "TextOperand",
    "RangeOperand",
    "SetOperand",
    "RatingOperand",
    "LiteralOperand",
    "Operand",
    "Rule",
    "Condition",
    "SmartFolder",
    "Palette",
    "RawMetas",
    "Item",
    "FilterContext",
    "coerce_number",
]

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


class Malformed:
    """Operand placeholder for rule values that cannot be used."""

    _instance: Optional["Malformed"] = None

    def __new__(cls) -> "Malformed":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MALFORMED"

    def __bool__(self) -> bool:
        return False


MALFORMED = Malformed()


@dataclass(frozen=True)
class TextOperand:
    text: str  # already case-folded


@dataclass(frozen=True)
class RangeOperand:
    low: float
    high: Optional[float] = None


@dataclass(frozen=True)
class SetOperand:
    members: Tuple[Any, ...]


@dataclass(frozen=True)
class RatingOperand:
    """Either a list of permitted ratings or a single target.

    ``choices`` holds strings ("3", "none"); ``target`` is ``None`` when the
    rule targets unrated items.
    """

    choices: Tuple[str, ...] = ()
    target: Optional[int] = None


@dataclass(frozen=True)
class LiteralOperand:
    value: str


Operand = Union[TextOperand, RangeOperand, SetOperand, RatingOperand, LiteralOperand, Malformed, None]


def coerce_number(value: Any) -> Optional[float]:
    """Return ``value`` as a number, or ``None`` when it is not numeric."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        # NaN and infinities (JSON 1e400) are not usable numbers
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
        if not math.isfinite(number):
            return None
        return int(number) if number.is_integer() and "." not in value else number
    return None


def _parse_leading_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        found = _LEADING_INT.match(value)
        if found:
            return int(found.group(1))
    return None


_TEXT_PROPERTIES = {
    RuleProperty.NAME,
    RuleProperty.FOLDER_NAME,
    RuleProperty.URL,
    RuleProperty.ANNOTATION,
    RuleProperty.COMMENTS,
    RuleProperty.CAMERA,
}
_RANGE_PROPERTIES = {
    RuleProperty.WIDTH,
    RuleProperty.HEIGHT,
    RuleProperty.FILE_SIZE,
    RuleProperty.DURATION,
    RuleProperty.BPM,
    RuleProperty.ISO,
    RuleProperty.APERTURE,
    RuleProperty.FOCAL_LENGTH,
    RuleProperty.SHUTTER,
    RuleProperty.CREATE_TIME,
    RuleProperty.MTIME,
    RuleProperty.BTIME,
    RuleProperty.TIMESTAMP,
}
_SET_PROPERTIES = {RuleProperty.TAGS, RuleProperty.FOLDERS}
_LITERAL_PROPERTIES = {RuleProperty.TYPE, RuleProperty.SHAPE, RuleProperty.COLOR}


def _text_operand(value: Any) -> Operand:
    if value is None:
        return TextOperand("")
    if isinstance(value, str):
        return TextOperand(value.casefold())
    return MALFORMED


def _range_operand(value: Any) -> Operand:
    if isinstance(value, (list, tuple)):
        if not value:
            return MALFORMED
        low = coerce_number(value[0])
        high = coerce_number(value[1]) if len(value) > 1 else None
    else:
        low, high = coerce_number(value), None
    if low is None:
        return MALFORMED
    return RangeOperand(low, high)


def _set_operand(value: Any) -> Operand:
    if value is None:
        return SetOperand(())
    if isinstance(value, (list, tuple, set, frozenset)):
        return SetOperand(tuple(value))
    return MALFORMED


def _rating_operand(method: str, value: Any) -> Operand:
    if method == "contain":
        if isinstance(value, str):
            parts = [part.strip() for part in value.split(",")]
            return RatingOperand(choices=tuple(p for p in parts if p))
        if isinstance(value, (list, tuple)):
            return RatingOperand(choices=tuple(str(v).strip() for v in value if v is not None))
        if isinstance(value, int) and not isinstance(value, bool):
            return RatingOperand(choices=(str(value),))
        return MALFORMED
    return RatingOperand(target=_parse_leading_int(value))


def _literal_operand(value: Any) -> Operand:
    if isinstance(value, str):
        return LiteralOperand(value)
    return MALFORMED


def build_operand(prop: Optional[RuleProperty], method: str, value: Any) -> Operand:
    """Resolve a raw rule value into the operand its property expects."""
    if prop is None:
        return MALFORMED
    if prop in _TEXT_PROPERTIES:
        return _text_operand(value)
    if prop in _RANGE_PROPERTIES:
        return _range_operand(value)
    if prop in _SET_PROPERTIES:
        return _set_operand(value)
    if prop is RuleProperty.RATING:
        return _rating_operand(method, value)
    if prop in _LITERAL_PROPERTIES:
        return _literal_operand(value)
    # fontActivated carries no value
    return None


@dataclass
class Rule:
    """A single attribute test (property + method + value)."""

    property: str
    method: str
    value: Any = None
    unit: Optional[str] = None
    # Target aspect for custom shape rules
    width: Optional[float] = None
    height: Optional[float] = None
    kind: Optional[RuleProperty] = field(init=False, repr=False, compare=False, default=None)
    operand: Operand = field(init=False, repr=False, compare=False, default=None)

    def __post_init__(self) -> None:
        self.kind = RuleProperty.parse(self.property)
        self.operand = build_operand(self.kind, self.method, self.value)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"property": self.property, "method": self.method, "value": self.value}
        if self.unit is not None:
            payload["unit"] = self.unit
        if self.width is not None:
            payload["width"] = self.width
        if self.height is not None:
            payload["height"] = self.height
        return payload

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "Rule":
        method = data.get("method")
        unit = data.get("unit")
        return Rule(
            property=str(data.get("property", "")),
            method=method if isinstance(method, str) else "",
            value=data.get("value"),
            unit=unit if isinstance(unit, str) else None,
            width=coerce_number(data.get("width")),
            height=coerce_number(data.get("height")),
        )


@dataclass
class Condition:
    """Rules combined by AND/OR, optionally negated.

    match: 'AND' -> every rule, anything else -> any rule
    boolean: 'FALSE' negates the combined result
    """

    rules: List[Rule] = field(default_factory=list)
    match: str = "OR"
    boolean: str = "TRUE"

    @property
    def negated(self) -> bool:
        return self.boolean == "FALSE"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rules": [r.to_dict() for r in self.rules],
            "match": self.match,
            "boolean": self.boolean,
        }

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "Condition":
        rules: List[Rule] = []
        raw_rules = data.get("rules")
        if isinstance(raw_rules, list):
            for rd in raw_rules:
                if isinstance(rd, Mapping):
                    rules.append(Rule.from_dict(rd))
                else:
                    # keep the slot so OR/AND still sees a non-matching rule
                    rules.append(Rule(property="", method=""))
        match = data.get("match")
        boolean = data.get("boolean")
        return Condition(
            rules=rules,
            match=match if isinstance(match, str) else "OR",
            boolean=boolean if isinstance(boolean, str) else "TRUE",
        )


@dataclass
class SmartFolder:
    id: str
    name: str = ""
    conditions: List[Condition] = field(default_factory=list)
    description: Optional[str] = None
    children: List["SmartFolder"] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "conditions": [c.to_dict() for c in self.conditions],
        }
        if self.description is not None:
            payload["description"] = self.description
        if self.children:
            payload["children"] = [child.to_dict() for child in self.children]
        return payload

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "SmartFolder":
        conditions: List[Condition] = []
        raw_conditions = data.get("conditions")
        if isinstance(raw_conditions, list):
            for cd in raw_conditions:
                if isinstance(cd, Mapping):
                    conditions.append(Condition.from_dict(cd))
                else:
                    # an unusable condition fails the whole folder
                    conditions.append(Condition(rules=[Rule(property="", method="")], match="AND"))
        children: List[SmartFolder] = []
        raw_children = data.get("children")
        if isinstance(raw_children, list):
            children = [SmartFolder.from_dict(ch) for ch in raw_children if isinstance(ch, Mapping)]
        description = data.get("description")
        return SmartFolder(
            id=str(data.get("id", "")),
            name=str(data.get("name") or ""),
            conditions=conditions,
            description=description if isinstance(description, str) else None,
            children=children,
        )


@dataclass(frozen=True)
class Palette:
    color: Tuple[int, int, int]
    ratio: float


@dataclass(frozen=True)
class RawMetas:
    """EXIF-derived camera fields, kept as the library formats them."""

    camera: Optional[str] = None
    iso_speed: Any = None
    aperture: Any = None
    focal_length: Any = None
    shutter: Any = None
    timestamp: Any = None

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "RawMetas":
        camera = data.get("camera")
        return RawMetas(
            camera=camera if isinstance(camera, str) else None,
            iso_speed=data.get("isoSpeed"),
            aperture=data.get("aperture"),
            focal_length=data.get("focalLength"),
            shutter=data.get("shutter"),
            timestamp=data.get("timestamp"),
        )


def _text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _sequence(value: Any) -> Tuple[Any, ...]:
    if isinstance(value, (list, tuple, set, frozenset)):
        return tuple(value)
    return ()


def _palettes(value: Any) -> Tuple[Palette, ...]:
    result: List[Palette] = []
    for entry in _sequence(value):
        if not isinstance(entry, Mapping):
            continue
        color = entry.get("color")
        ratio = coerce_number(entry.get("ratio"))
        if not isinstance(color, (list, tuple)) or len(color) < 3 or ratio is None:
            continue
        channels = [coerce_number(c) for c in color[:3]]
        if any(c is None for c in channels):
            continue
        result.append(Palette(color=(int(channels[0]), int(channels[1]), int(channels[2])), ratio=float(ratio)))
    return tuple(result)


def _comments(value: Any) -> Tuple[str, ...]:
    result: List[str] = []
    for entry in _sequence(value):
        if isinstance(entry, Mapping):
            annotation = entry.get("annotation")
            result.append(annotation if isinstance(annotation, str) else "")
        elif isinstance(entry, str):
            result.append(entry)
    return tuple(result)


@dataclass(frozen=True)
class Item:
    """Read-only view of a library item record."""

    id: str = ""
    name: Optional[str] = None
    url: Optional[str] = None
    annotation: Optional[str] = None
    comments: Optional[Tuple[str, ...]] = None
    tags: Optional[Tuple[str, ...]] = None
    folders: Optional[Tuple[str, ...]] = None
    ext: Optional[str] = None
    width: Optional[float] = None
    height: Optional[float] = None
    size: Optional[float] = None
    duration: Optional[float] = None
    bpm: Optional[float] = None
    star: Optional[int] = None
    modification_time: Optional[float] = None
    mtime: Optional[float] = None
    btime: Optional[float] = None
    medium: Optional[str] = None
    palettes: Tuple[Palette, ...] = ()
    raw_metas: Optional[RawMetas] = None
    font_names: Optional[Dict[str, str]] = None

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "Item":
        raw_metas = data.get("rawMetas")
        font_metas = data.get("fontMetas")
        font_names: Optional[Dict[str, str]] = None
        if isinstance(font_metas, Mapping) and isinstance(font_metas.get("postScriptName"), Mapping):
            font_names = {str(k): v for k, v in font_metas["postScriptName"].items() if isinstance(v, str)}
        star = coerce_number(data.get("star"))
        return Item(
            id=str(data.get("id", "")),
            name=_text(data.get("name")),
            url=_text(data.get("url")),
            annotation=_text(data.get("annotation")),
            comments=_comments(data["comments"]) if "comments" in data and data["comments"] is not None else None,
            tags=_sequence(data.get("tags")) if data.get("tags") is not None else None,
            folders=_sequence(data.get("folders")) if data.get("folders") is not None else None,
            ext=_text(data.get("ext")),
            width=coerce_number(data.get("width")),
            height=coerce_number(data.get("height")),
            size=coerce_number(data.get("size")),
            duration=coerce_number(data.get("duration")),
            bpm=coerce_number(data.get("bpm")),
            star=int(star) if star is not None else None,
            modification_time=coerce_number(data.get("modificationTime")),
            mtime=coerce_number(data.get("mtime")),
            btime=coerce_number(data.get("btime")),
            medium=_text(data.get("medium")),
            palettes=_palettes(data.get("palettes")),
            raw_metas=RawMetas.from_dict(raw_metas) if isinstance(raw_metas, Mapping) else None,
            font_names=font_names,
        )


def _now_ms() -> float:
    return time.time() * 1000


@dataclass(frozen=True)
class FilterContext:
    """Per-batch auxiliary data supplied by the caller.

    ``now_ms`` pins the clock used by "within N days" rules so that one batch
    is evaluated against a single instant.
    """

    folder_mappings: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)
    installed_fonts: Mapping[str, bool] = field(default_factory=dict)
    now_ms: float = field(default_factory=_now_ms)

    @staticmethod
    def from_dict(data: Optional[Mapping[str, Any]]) -> "FilterContext":
        if not data:
            return FilterContext()
        mappings = data.get("folderMappings", data.get("folder_mappings"))
        fonts = data.get("installedFonts", data.get("installed_fonts"))
        now_ms = coerce_number(data.get("nowMs", data.get("now_ms")))
        return FilterContext(
            folder_mappings=mappings if isinstance(mappings, Mapping) else {},
            installed_fonts=fonts if isinstance(fonts, Mapping) else {},
            now_ms=float(now_ms) if now_ms is not None else _now_ms(),
        )


def ensure_item(item: Union[Item, Mapping[str, Any]]) -> Item:
    if isinstance(item, Item):
        return item
    if isinstance(item, Mapping):
        return Item.from_dict(item)
    raise TypeError(f"Unsupported item record: {type(item).__name__}")


def ensure_folder(folder: Union[SmartFolder, Mapping[str, Any], None]) -> Optional[SmartFolder]:
    if isinstance(folder, SmartFolder):
        return folder
    if isinstance(folder, Mapping):
        return SmartFolder.from_dict(folder)
    return None


def ensure_context(context: Union[FilterContext, Mapping[str, Any], None]) -> FilterContext:
    if isinstance(context, FilterContext):
        return context
    if isinstance(context, Mapping):
        return FilterContext.from_dict(context)
    return FilterContext()
