"""
Rule Table Engine

Interprets declarative field rules against plain text or XML. A schema is an
ordered tuple of FieldRule; every rule names a (dotted) output field, a
matcher that finds the raw value, an optional postprocessor and the value
kind that decides conversion and the default for a missing value.

One routine, extract_fields(), runs any rule table. There is no per-field
extraction code outside the rule tables in extraction/schemas.py.
"""

import re
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Sequence, Tuple

from core.config import get_settings
from core.normalize import ZERO, normalize_date, parse_number, parse_plain_number
from extraction.parsers import collapse_whitespace, xml_text


# =============================================================================
# Value Kinds
# =============================================================================

class FieldKind(str, Enum):
    """How a captured string is converted, and what a missing value becomes."""
    TEXT = "text"                  # collapsed whitespace, default ""
    NUMBER = "number"              # Italian number format, default 0
    PLAIN_NUMBER = "plain_number"  # dot-decimal (XML), default 0
    INTEGER = "integer"            # default 0
    DATE = "date"                  # ISO date, default ""
    DATETIME = "datetime"          # ISO date-time when a time is present


def convert_value(raw: Optional[str], kind: FieldKind) -> Any:
    """Convert a raw captured string (or None) to the kind's value."""
    if kind == FieldKind.TEXT:
        return collapse_whitespace(raw or "")
    if kind == FieldKind.NUMBER:
        return parse_number(raw)
    if kind == FieldKind.PLAIN_NUMBER:
        return parse_plain_number(raw)
    if kind == FieldKind.INTEGER:
        return int(parse_plain_number(raw))
    if kind == FieldKind.DATE:
        return normalize_date(raw) if raw else ""
    if kind == FieldKind.DATETIME:
        return normalize_date(raw, keep_time=True) if raw else ""
    return raw


def is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (Decimal, int, float)):
        return value == 0
    return False


# =============================================================================
# XML Helpers
# =============================================================================

def _element_pattern(tag: str) -> "re.Pattern":
    # Namespace prefixes (p:FatturaElettronicaBody) are tolerated on both tags
    return re.compile(
        rf"<(?:[\w.-]+:)?{re.escape(tag)}\b[^>]*>(.*?)</(?:[\w.-]+:)?{re.escape(tag)}\s*>",
        re.DOTALL,
    )


def xml_elements(text: str, tag: str) -> List[str]:
    """Inner content of every element with the given tag, in document order."""
    if not text:
        return []
    return [m.group(1) for m in _element_pattern(tag).finditer(text)]


def xml_element(text: str, tag: str) -> Optional[str]:
    """Inner content of the first element with the given tag."""
    if not text:
        return None
    match = _element_pattern(tag).search(text)
    return match.group(1) if match else None


def looks_like_xml(payload: str) -> bool:
    head = (payload or "").lstrip("\ufeff").lstrip()[:512]
    return head.startswith("<") and ("<?xml" in head or re.search(r"<(?:[\w.-]+:)?\w+[^>]*>", head) is not None)


# =============================================================================
# Scopes (confine the text a rule sees)
# =============================================================================

@dataclass(frozen=True)
class Section:
    """Text between a start label and the next end label (or the end).

    Patterns are case-insensitive and multiline, so ^ anchors at a line start.
    """
    start: str
    end: Optional[str] = None

    def narrow(self, text: str) -> Optional[str]:
        start = re.search(self.start, text, re.IGNORECASE | re.MULTILINE)
        if not start:
            return None
        rest = text[start.end():]
        if self.end:
            stop = re.search(self.end, rest, re.IGNORECASE | re.MULTILINE)
            if stop:
                rest = rest[:stop.start()]
        return rest


@dataclass(frozen=True)
class XmlElement:
    """Content of the first element with this tag."""
    tag: str

    def narrow(self, text: str) -> Optional[str]:
        return xml_element(text, self.tag)


def apply_scopes(text: str, scopes: Sequence[Any]) -> Optional[str]:
    for scope in scopes:
        if text is None:
            return None
        text = scope.narrow(text)
    return text


# =============================================================================
# Matchers (find the raw value)
# =============================================================================

@dataclass(frozen=True)
class Label:
    """First capture group of a regex (case-insensitive, multiline)."""
    pattern: str

    def find(self, text: str) -> Optional[str]:
        match = re.search(self.pattern, text, re.IGNORECASE | re.MULTILINE)
        if not match:
            return None
        value = match.group(1)
        return value.strip() if value and value.strip() else None


@dataclass(frozen=True)
class Between:
    """Everything after a start label up to a stop label (or the end)."""
    start: str
    stop: str

    def find(self, text: str) -> Optional[str]:
        pattern = rf"{self.start}\s*(.*?)(?={self.stop}|$)"
        match = re.search(pattern, text, re.IGNORECASE | re.DOTALL)
        if not match:
            return None
        value = match.group(1).strip()
        return value or None


@dataclass(frozen=True)
class XmlTag:
    """Text of the first element with this tag."""
    tag: str

    def find(self, text: str) -> Optional[str]:
        content = xml_element(text, self.tag)
        if content is None:
            return None
        return xml_text(content) or None


@dataclass(frozen=True)
class XmlAll:
    """Text of every element with this tag, joined."""
    tag: str
    separator: str = " "

    def find(self, text: str) -> Optional[str]:
        parts = [xml_text(c) for c in xml_elements(text, self.tag)]
        parts = [p for p in parts if p]
        return self.separator.join(parts) if parts else None


@dataclass(frozen=True)
class XmlJoin:
    """First element of each tag, joined in the given order (Nome + Cognome)."""
    tags: Tuple[str, ...]
    separator: str = " "

    def find(self, text: str) -> Optional[str]:
        parts = []
        for tag in self.tags:
            content = xml_element(text, tag)
            if content is not None and xml_text(content):
                parts.append(xml_text(content))
        return self.separator.join(parts) if parts else None


@dataclass(frozen=True)
class XmlSum:
    """Sum of the numeric text of every element with this tag."""
    tag: str

    def find(self, text: str) -> Optional[str]:
        values = [xml_text(c) for c in xml_elements(text, self.tag)]
        values = [v for v in values if v]
        if not values:
            return None
        return str(sum((parse_plain_number(v) for v in values), ZERO))


@dataclass(frozen=True)
class FirstOf:
    """Ordered fallback: the first matcher that finds a value wins."""
    matchers: Tuple[Any, ...]

    def find(self, text: str) -> Optional[str]:
        for matcher in self.matchers:
            value = matcher.find(text)
            if value:
                return value
        return None


_UNIT_LITERALS = r"LITRI|LT|L|KG"
_NUMBER = r"\d[\d.,]*\d|\d"


@dataclass(frozen=True)
class QuantityChain:
    """
    Quantity with an ordered fallback chain.

    1. A number immediately adjacent to a unit literal ("15.230 LITRI")
    2. A number in the region following a quantity label
    3. A number from the "<qty> x <unit price> <unit>" pattern

    The first candidate of at least min_value wins. When no candidate is
    plausible the first non-zero candidate is used, so small deliveries are
    not lost. Without an explicit min_value, PLAUSIBLE_QUANTITY_MIN is read
    from the settings on every call.
    """
    min_value: Optional[Decimal] = None
    label: str = r"Quantit[àa]"
    region_chars: int = 80

    def candidates(self, text: str) -> List[str]:
        found: List[str] = []

        adjacent = rf"({_NUMBER})[ \t]*(?:{_UNIT_LITERALS})\b"
        found.extend(m.group(1) for m in re.finditer(adjacent, text, re.IGNORECASE))

        for label in re.finditer(self.label, text, re.IGNORECASE):
            region = text[label.end():label.end() + self.region_chars]
            found.extend(m.group(0) for m in re.finditer(_NUMBER, region))

        structural = rf"({_NUMBER})\s*[xX×]\s*(?:{_NUMBER})\s*(?:{_UNIT_LITERALS})\b"
        found.extend(m.group(1) for m in re.finditer(structural, text, re.IGNORECASE))
        return found

    def find(self, text: str) -> Optional[str]:
        candidates = self.candidates(text)
        min_value = self.min_value if self.min_value is not None else get_settings().plausible_quantity_min
        for candidate in candidates:
            if parse_number(candidate) >= min_value:
                return candidate
        for candidate in candidates:
            if parse_number(candidate) > 0:
                return candidate
        return None


# =============================================================================
# Field Rules
# =============================================================================

@dataclass(frozen=True)
class FieldRule:
    """
    One declarative extraction rule.

    Attributes:
        name: Output field, dotted for nested groups ("issuer.name")
        matcher: Finds the raw string (Label, Between, XmlTag, ...)
        postprocess: Optional cleanup applied to the raw string
        kind: Conversion of the cleaned string and default when missing
        scope: Scopes applied in order before matching
        default: Overrides the kind's default for a missing value
    """
    name: str
    matcher: Any
    postprocess: Optional[Callable[[str], str]] = None
    kind: FieldKind = FieldKind.TEXT
    scope: Tuple[Any, ...] = ()
    default: Any = None

    def __post_init__(self):
        if not self.name:
            raise ValueError("FieldRule requires a field name")
        if not isinstance(self.scope, tuple):
            object.__setattr__(self, "scope", (self.scope,))

    def apply(self, text: str) -> Tuple[Any, bool]:
        """Run the rule. Returns (value, matched)."""
        region = apply_scopes(text or "", self.scope)
        raw = self.matcher.find(region) if region else None
        if raw is not None and self.postprocess:
            raw = self.postprocess(raw) or None
        value = convert_value(raw, self.kind)
        if is_empty(value):
            if self.default is not None:
                return self.default, False
            return value, False
        return value, True


@dataclass
class Extraction:
    """Values produced by one run of a rule table."""
    values: Dict[str, Any] = field(default_factory=dict)
    matched: FrozenSet[str] = frozenset()

    @property
    def is_empty(self) -> bool:
        return not self.matched

    def get(self, name: str, default: Any = None) -> Any:
        return self.values.get(name, default)

    def nested(self) -> Dict[str, Any]:
        """Dotted names expanded into nested dicts."""
        result: Dict[str, Any] = {}
        for name, value in self.values.items():
            target = result
            *groups, leaf = name.split(".")
            for group in groups:
                target = target.setdefault(group, {})
            target[leaf] = value
        return result


def extract_fields(rules: Sequence[FieldRule], text: str) -> Extraction:
    """
    Run a rule table over text.

    Every declared field is present in the result: missing strings are "",
    missing numbers are 0 (or the rule's default).
    """
    values: Dict[str, Any] = {}
    matched = set()
    for rule in rules:
        value, found = rule.apply(text)
        values[rule.name] = value
        if found:
            matched.add(rule.name)
    return Extraction(values=values, matched=frozenset(matched))
