"""Data structures for quotes, locations and quote listings."""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class Location:
    """A print location on a garment (embedded in a quote, no identity of its own)."""

    name: str
    width: Any = 0
    height: Any = 0
    quantity: Any = 0

    @classmethod
    def from_dict(cls, raw: Dict[str, Any], index: int) -> "Location":
        """
        Build a Location from a front-end payload.

        Accepts the short aliases ``w``, ``h``, ``qty`` and ``q``. ``index`` is
        the zero-based position, used for the default name.
        """
        return cls(
            name=raw.get("name") or f"Location {index + 1}",
            width=raw.get("width") or raw.get("w") or 0,
            height=raw.get("height") or raw.get("h") or 0,
            quantity=raw.get("quantity") or raw.get("qty") or raw.get("q") or 0,
        )


@dataclass
class QuoteRecord:
    """
    A DTF transfer quote as submitted by the front end.

    ``data`` holds the free-form pricing and production fields and
    ``locations`` the raw location entries; both are stored exactly as given.
    """

    id: Any
    quote_name: Optional[str] = None
    customer_id: Optional[Any] = None
    customer_email: Optional[str] = None
    date_created: Optional[Any] = None
    data: Optional[Dict[str, Any]] = None
    locations: Optional[List[Dict[str, Any]]] = None
    total_transfers: Optional[Any] = None
    pricing: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "QuoteRecord":
        """
        Build a QuoteRecord from request data, ignoring unknown keys.

        Raises:
            ValueError: If ``raw`` is not a mapping or has no ``id``
        """
        if not isinstance(raw, dict):
            raise ValueError("Quote data must be an object")
        if raw.get("id") in (None, ""):
            raise ValueError("Invalid quote data. Missing required fields.")

        return cls(
            id=raw["id"],
            quote_name=raw.get("quote_name"),
            customer_id=raw.get("customer_id"),
            customer_email=raw.get("customer_email"),
            date_created=raw.get("date_created"),
            data=raw.get("data"),
            locations=raw.get("locations"),
            total_transfers=raw.get("total_transfers"),
            pricing=raw.get("pricing"),
        )

    def location_entries(self) -> List[Location]:
        return [Location.from_dict(loc or {}, i) for i, loc in enumerate(self.locations or [])]

    def to_metadata(self, file_path: str, last_updated: str) -> Dict[str, Any]:
        """Metadata document stored next to the rendered quote."""
        metadata = asdict(self)
        metadata["file_path"] = file_path
        metadata["last_updated"] = last_updated
        return metadata


@dataclass
class QuoteListing:
    """
    Result of listing a customer's quotes.

    ``degraded`` is True when the directory scan failed or at least one
    metadata file could not be read, so an empty ``quotes`` list with
    ``degraded`` False really means "no quotes".
    """

    quotes: List[Dict[str, Any]] = field(default_factory=list)
    degraded: bool = False
    skipped_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
