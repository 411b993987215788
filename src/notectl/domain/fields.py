"""Field codec: named fields packed into a single text blob.

A note's text carries any number of fields using marker lines::

    #[Title]#
    Directory Listings

    #[Description]#
    Some directories on the server were configured [...]

which decodes to ``{"Title": "Directory Listings\\n", "Description":
"Some directories on the server were configured [...]"}``.

Grammar: ``(#[<name>]#\\n<value>)*`` with blocks joined by a single line
break. A marker must start a line and be followed by a line break. The
line break preceding a marker is a separator and does not belong to the
previous value. Values are never trimmed so that, for well-formed text,
``encode_fields(decode_fields(raw)) == raw``.

Decoding never fails: anything that is not a complete marker line is
plain value text. Text with no markers at all decodes to one implicit
field named :data:`DEFAULT_FIELD_NAME`.

Duplicate names: the last occurrence provides the value, the first
occurrence fixes the position in the mapping.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

MAX_TEXT_LENGTH = 65535
DEFAULT_FIELD_NAME = "Body"
TITLE_FIELD = "Title"

# A marker line: ``#[name]#`` followed by LF or CRLF. The name may not
# contain ``]#`` or a line break.
MARKER_PATTERN = re.compile(r"^#\[((?:(?!\]#)[^\r\n])+)\]#(?:\r?\n)", re.MULTILINE)


class FieldValidationError(ValueError):
    """Raised when a field write would push the text past its length limit."""

    def __init__(self, length: int, limit: int = MAX_TEXT_LENGTH) -> None:
        self.length = length
        self.limit = limit
        super().__init__(f"Text is too long ({length} characters, maximum is {limit})")


@dataclass(frozen=True)
class FieldSpan:
    """Location of one field inside a raw text blob.

    ``start``/``end`` delimit the value only; the marker line sits just
    before ``start``.
    """

    name: str
    start: int
    end: int

    def value(self, raw: str) -> str:
        return raw[self.start : self.end]


# ---------------------------------------------------------------------------
# Scanning
# ---------------------------------------------------------------------------


def scan_fields(raw: str) -> list[FieldSpan]:
    """Return the span of every marked field in *raw*, in source order."""
    matches = list(MARKER_PATTERN.finditer(raw))
    spans: list[FieldSpan] = []
    for i, match in enumerate(matches):
        start = match.end()
        if i + 1 < len(matches):
            end = _separator_start(raw, matches[i + 1], floor=start)
        else:
            end = len(raw)
        spans.append(FieldSpan(name=match.group(1), start=start, end=end))
    return spans


def _separator_start(raw: str, marker: re.Match[str], *, floor: int) -> int:
    """Index of the line break that introduces *marker*.

    Markers only match at line start, so the character before one is a
    line break unless the marker directly follows the previous marker
    line (an empty value). CRLF separators are only recognized in front
    of CRLF markers.
    """
    marker_start = marker.start()
    if marker_start <= floor or raw[marker_start - 1] != "\n":
        return marker_start
    crlf = marker.group(0).endswith("\r\n")
    if crlf and marker_start - 1 > floor and raw[marker_start - 2] == "\r":
        return marker_start - 2
    return marker_start - 1


def _preamble(raw: str, spans: list[FieldSpan]) -> str:
    """Text before the first marker, minus its separator line break."""
    if not spans:
        return raw
    first_marker = MARKER_PATTERN.search(raw)
    assert first_marker is not None
    return raw[: _separator_start(raw, first_marker, floor=0)]


def _has_implicit_field(raw: str, spans: list[FieldSpan]) -> bool:
    if not spans:
        return bool(raw)
    return bool(_preamble(raw, spans))


# ---------------------------------------------------------------------------
# Public codec functions
# ---------------------------------------------------------------------------


def decode_fields(raw: str, *, default_field: str = DEFAULT_FIELD_NAME) -> dict[str, str]:
    """Decode *raw* into an ordered ``{name: value}`` mapping.

    Text with no markers becomes a single implicit field under
    *default_field*. Any non-empty text before the first marker is exposed
    the same way. Empty text decodes to an empty mapping.
    """
    spans = scan_fields(raw)
    fields: dict[str, str] = {}

    if _has_implicit_field(raw, spans):
        fields[default_field] = _preamble(raw, spans)

    for span in spans:
        fields[span.name] = span.value(raw)
    return fields


def encode_fields(fields: Mapping[str, str]) -> str:
    """Encode an ordered mapping back into marker text."""
    return "\n".join(f"#[{name}]#\n{value}" for name, value in fields.items())


def validate_field_name(name: str) -> None:
    """Raise ``ValueError`` if *name* cannot be written as a marker."""
    if not name:
        msg = "Field name must not be empty"
        raise ValueError(msg)
    if "]#" in name or "\n" in name or "\r" in name:
        msg = f"Field name {name!r} must not contain ']#' or line breaks"
        raise ValueError(msg)


def set_field(
    raw: str,
    name: str,
    value: str,
    *,
    max_length: int = MAX_TEXT_LENGTH,
    default_field: str = DEFAULT_FIELD_NAME,
) -> str:
    """Return *raw* with field *name* set to *value*.

    An existing field has only its value span replaced (the winning, last
    occurrence for duplicated names). A missing field is appended at the
    end. Writing the implicit *default_field* of unmarked text replaces
    that text. An empty value cannot be held by an implicit field, so it
    is written under an explicit marker in the same position.

    Raises:
        ValueError: If *name* is not a valid marker name or *value*
            contains a marker line.
        FieldValidationError: If the result exceeds *max_length*.
    """
    validate_field_name(name)
    # A trailing marker-like line would become a marker once a separator follows it.
    if MARKER_PATTERN.search(f"{value}\n"):
        msg = f"Value for field {name!r} must not contain a field marker line"
        raise ValueError(msg)

    spans = scan_fields(raw)
    existing = [span for span in spans if span.name == name]

    if existing:
        span = existing[-1]
        # Empty value directly followed by the next marker line: no separator yet.
        needs_break = bool(value) and span.end < len(raw) and raw[span.end] not in "\r\n"
        updated = raw[: span.start] + value + ("\n" if needs_break else "") + raw[span.end :]
    elif name == default_field and _has_implicit_field(raw, spans):
        rest = raw[len(_preamble(raw, spans)) :]
        updated = value + rest if value else f"#[{name}]#\n{rest}"
    elif not raw:
        updated = f"#[{name}]#\n{value}"
    else:
        updated = f"{raw}\n#[{name}]#\n{value}"

    if len(updated) > max_length:
        raise FieldValidationError(len(updated), max_length)
    return updated


def get_field(
    raw: str,
    name: str,
    default: str | None = None,
    *,
    default_field: str = DEFAULT_FIELD_NAME,
) -> str | None:
    """Return the value of field *name*, or *default* when it is absent."""
    return decode_fields(raw, default_field=default_field).get(name, default)


# ---------------------------------------------------------------------------
# FieldDocument: raw text with a lazily decoded field view
# ---------------------------------------------------------------------------


class FieldDocument:
    """A raw text blob and its decoded fields.

    ``fields`` is derived from ``raw`` on first access and cached.
    :meth:`set_field` swaps both in one assignment, so readers never see
    a new ``raw`` with stale ``fields``.
    """

    __slots__ = ("_default_field", "_max_length", "_state")

    def __init__(
        self,
        raw: str = "",
        *,
        default_field: str = DEFAULT_FIELD_NAME,
        max_length: int = MAX_TEXT_LENGTH,
    ) -> None:
        self._default_field = default_field
        self._max_length = max_length
        self._state: tuple[str, dict[str, str] | None] = (raw, None)

    @classmethod
    def from_fields(
        cls,
        fields: Mapping[str, str],
        *,
        default_field: str = DEFAULT_FIELD_NAME,
        max_length: int = MAX_TEXT_LENGTH,
    ) -> FieldDocument:
        """Build a document by setting each field in order."""
        doc = cls("", default_field=default_field, max_length=max_length)
        for name, value in fields.items():
            doc.set_field(name, value)
        return doc

    @property
    def raw(self) -> str:
        return self._state[0]

    @property
    def fields(self) -> dict[str, str]:
        raw, fields = self._state
        if fields is None:
            fields = decode_fields(raw, default_field=self._default_field)
            self._state = (raw, fields)
        return dict(fields)

    def get_field(self, name: str, default: str | None = None) -> str | None:
        return self.fields.get(name, default)

    def has_field(self, name: str) -> bool:
        return name in self.fields

    def set_field(self, name: str, value: str) -> FieldDocument:
        """Set *name* to *value* in place and return ``self``."""
        raw = set_field(
            self.raw,
            name,
            value,
            max_length=self._max_length,
            default_field=self._default_field,
        )
        self._state = (raw, decode_fields(raw, default_field=self._default_field))
        return self

    def title(self, fallback: str) -> str:
        """The ``Title`` field, or *fallback* when the document has none."""
        return self.fields.get(TITLE_FIELD, fallback)

    def has_title(self) -> bool:
        return self.has_field(TITLE_FIELD)

    def __iter__(self) -> Iterator[str]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.raw)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FieldDocument):
            return NotImplemented
        return self.raw == other.raw

    def __hash__(self) -> int:
        return hash(self.raw)

    def __repr__(self) -> str:
        return f"FieldDocument(fields={list(self.fields)!r})"
