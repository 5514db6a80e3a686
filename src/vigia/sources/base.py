"""Source adapter contract.

An adapter integrates one government feed and owns exactly one field group
of the merged Entity. Its ``fetch`` returns a normalized record, a list of
records, or None; "no data" is None or an empty list, never an exception.
Transport failures surface as TransportError, shape mismatches as
ParseError. The orchestrator catches both per adapter.

Raw JSON never travels past an adapter: every payload goes through a parse
function that returns ``Ok(value)`` or ``Err(ParseError)``.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Any, Generic, TypeVar

from vigia.models import Identity


logger = logging.getLogger(__name__)

T = TypeVar("T")

# Entity field groups, one owner each
FIELD_PROFILE = "profile"
FIELD_SPEND = "spend_records"
FIELD_STAFF = "staff_stats"
FIELD_AMENDMENTS = "amendments"

ALL_FIELDS = (FIELD_PROFILE, FIELD_SPEND, FIELD_STAFF, FIELD_AMENDMENTS)


class ParseError(Exception):
    """A source payload did not have the expected shape."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    error: ParseError


ParseResult = Ok[T] | Err


def unwrap(result: "Ok[T] | Err") -> T:
    """Return the parsed value or raise the carried ParseError."""
    if isinstance(result, Err):
        raise result.error
    return result.value


@dataclass(frozen=True)
class FetchParams:
    """Query window shared by every adapter of one aggregation.

    Attributes:
        years: Calendar years to fetch, most recent first
    """

    years: tuple[int, ...]

    @classmethod
    def recent(cls, today: date | None = None, span: int = 2) -> "FetchParams":
        """Current year plus the ``span - 1`` years before it."""
        today = today or date.today()
        return cls(years=tuple(today.year - i for i in range(span)))


class SourceAdapter(ABC):
    """One (source, owned field) integration.

    Subclasses set ``name`` (provenance label) and ``field`` (one of the
    FIELD_* constants) and implement ``fetch``.
    """

    name: str = ""
    field: str = ""

    def applies_to(self, identity: Identity) -> bool:
        """Whether this adapter can serve the identity at all."""
        return True

    def url_for(self, identity: Identity) -> str:
        """Public URL recorded in provenance."""
        return ""

    @abstractmethod
    async def fetch(self, identity: Identity, params: FetchParams) -> Any:
        """Fetch and normalize this adapter's field for one identity."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, field={self.field!r})"


def parse_brl(value: Any) -> float:
    """Parse a BRL amount such as "1.234,56" or "R$ 10,00" into a float.

    Numbers pass through. Blank strings parse as 0.0.

    Raises:
        ValueError: If the text is not a BRL amount
    """
    if isinstance(value, (int, float)):
        return float(value)
    if value is None:
        return 0.0
    text = str(value).replace("R$", "").strip()
    if not text:
        return 0.0
    if "," in text:
        text = text.replace(".", "").replace(",", ".")
    return float(text)
