"""Immutable in-memory catalogs of entities with precomputed embeddings.

A `CatalogIndex` is built once at startup from static fixture records. Every
record is validated against its pydantic schema and every embedding must
share one dimensionality; anything else raises `SchemaError` so corrupt data
stops the service instead of surfacing later as odd similarity scores.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Type, Union

import numpy as np
from pydantic import BaseModel, ValidationError as PydanticValidationError

from core.exceptions import SchemaError
from core.logger import get_logger

logger = get_logger("services.catalog_index")

EntryId = Union[str, int]


@dataclass(frozen=True)
class CatalogEntry:
    """One catalog item: identifier, read-only embedding and opaque attributes."""

    id: EntryId
    embedding: np.ndarray
    attributes: Mapping[str, Any]


class CatalogIndex:
    """Ordered, read-only collection of `CatalogEntry` objects.

    Embeddings are also kept stacked in a non-writeable matrix so a query can
    be scored against the whole catalog in one call.
    """

    def __init__(self, name: str, entries: Sequence[CatalogEntry], dimension: Optional[int]):
        self.name = name
        self._entries = tuple(entries)
        self.dimension = dimension
        if self._entries:
            matrix = np.vstack([e.embedding for e in self._entries]).astype(np.float32)
        else:
            matrix = np.zeros((0, dimension or 0), dtype=np.float32)
        matrix.setflags(write=False)
        self._matrix = matrix

    @classmethod
    def load(
        cls,
        records: Iterable[Any],
        record_schema: Type[BaseModel],
        name: str,
        dimension: Optional[int] = None,
    ) -> "CatalogIndex":
        """Validate raw records and build the index.

        Args:
            records: Raw mappings (parsed JSON) or already-validated models.
            record_schema: Pydantic model with `id` and `embedding` fields.
            name: Catalog name used in logs and errors.
            dimension: Expected embedding length. When omitted the first
                record defines it.

        Returns:
            A new `CatalogIndex`.

        Raises:
            SchemaError: If any record fails validation or has an embedding
                of the wrong length or with non-finite values, or if an id
                repeats.
        """
        entries: List[CatalogEntry] = []
        seen_ids = set()
        expected = dimension
        for position, raw in enumerate(records):
            try:
                record = raw if isinstance(raw, record_schema) else record_schema.model_validate(raw)
            except PydanticValidationError as exc:
                errors = [
                    {"field": ".".join(str(loc) for loc in err["loc"]), "message": err["msg"]}
                    for err in exc.errors()
                ]
                raise SchemaError(
                    f"Invalid record #{position} in '{name}' catalog",
                    catalog=name, record=position, errors=errors,
                ) from exc

            size = len(record.embedding)
            if expected is None:
                expected = size
            if size != expected:
                raise SchemaError(
                    f"Record #{position} in '{name}' catalog has embedding of length {size}, expected {expected}",
                    catalog=name, record=position,
                )
            if record.id in seen_ids:
                raise SchemaError(
                    f"Duplicate id '{record.id}' in '{name}' catalog",
                    catalog=name, record=position,
                )
            seen_ids.add(record.id)

            vector = np.asarray(record.embedding, dtype=np.float32)
            if not np.all(np.isfinite(vector)):
                raise SchemaError(
                    f"Record #{position} in '{name}' catalog has a non-finite embedding value",
                    catalog=name, record=position,
                )
            vector.setflags(write=False)
            attributes = MappingProxyType(record.model_dump(exclude={"embedding"}))
            entries.append(CatalogEntry(id=record.id, embedding=vector, attributes=attributes))

        logger.info("Loaded '%s' catalog: %s entries, dimension=%s", name, len(entries), expected)
        return cls(name, entries, expected)

    def entries(self) -> Sequence[CatalogEntry]:
        return self._entries

    def size(self) -> int:
        return len(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def matrix(self) -> np.ndarray:
        return self._matrix

    def get(self, entry_id: EntryId) -> Optional[CatalogEntry]:
        """Return the entry with `entry_id`, or None."""
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None


def _extract_records(payload: Any, name: str) -> List[Any]:
    """Accept either a JSON array or an object wrapping exactly one array."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        lists = [v for v in payload.values() if isinstance(v, list)]
        if len(lists) == 1:
            return lists[0]
    raise SchemaError(f"'{name}' catalog must be a JSON array of records", catalog=name)


def load_catalog_file(
    path: Union[str, Path],
    record_schema: Type[BaseModel],
    name: str,
    dimension: Optional[int] = None,
) -> CatalogIndex:
    """Read a JSON catalog file and build a validated `CatalogIndex`.

    Raises:
        SchemaError: If the file is missing, is not valid JSON, or holds
            invalid records.
    """
    path = Path(path)
    logger.info("Reading '%s' catalog from %s", name, path)
    try:
        with path.open("r", encoding="utf-8") as fh:
            payload = json.load(fh)
    except FileNotFoundError as exc:
        raise SchemaError(
            f"Catalog file not found: {path}. Build it with `python -m data.ingest_catalog {name}`",
            catalog=name,
        ) from exc
    except json.JSONDecodeError as exc:
        raise SchemaError(f"Catalog file is not valid JSON: {path} ({exc.msg})", catalog=name) from exc
    return CatalogIndex.load(_extract_records(payload, name), record_schema, name, dimension)
