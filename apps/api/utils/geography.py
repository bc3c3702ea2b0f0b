"""Geography directory: municipality -> barangay containment lookups.

Lookups never raise for unknown ids; they answer ``False``/``None``/``[]``.
"""
from typing import Dict, Iterable, Optional

from sqlalchemy import select

from apps.api import db
from apps.api.utils.validators import ValidationError, validate_positive_int


def _as_id(value) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class BaseGeographyDirectory:
    def municipality_of(self, barangay_id) -> Optional[int]:
        raise NotImplementedError

    def municipality_contains(self, municipality_id, barangay_id) -> bool:
        municipality_id = _as_id(municipality_id)
        if municipality_id is None:
            return False
        return self.municipality_of(barangay_id) == municipality_id


class GeographyDirectory(BaseGeographyDirectory):
    """Store-backed directory. Parent lookups are memoised per instance."""

    def __init__(self):
        self._parents: Dict[int, Optional[int]] = {}

    def municipality_of(self, barangay_id) -> Optional[int]:
        from apps.api.models.municipality import Barangay

        barangay_id = _as_id(barangay_id)
        if barangay_id is None:
            return None
        if barangay_id not in self._parents:
            self._parents[barangay_id] = db.session.execute(
                select(Barangay.municipality_id).where(Barangay.id == barangay_id)
            ).scalar_one_or_none()
        return self._parents[barangay_id]

    def list_barangays(self, municipality_id, bounded_only: bool = False) -> list:
        from apps.api.models.municipality import Barangay

        municipality_id = _as_id(municipality_id)
        if municipality_id is None:
            return []
        query = Barangay.query.filter(Barangay.municipality_id == municipality_id)
        if bounded_only:
            query = query.filter(
                Barangay.boundary_approved_at.isnot(None),
                Barangay.boundary_geojson.isnot(None),
            )
        barangays = query.order_by(Barangay.name.asc()).all()
        for b in barangays:
            self._parents[b.id] = b.municipality_id
        return barangays

    def get_barangay(self, barangay_id):
        from apps.api.models.municipality import Barangay

        barangay_id = _as_id(barangay_id)
        return db.session.get(Barangay, barangay_id) if barangay_id is not None else None

    def get_municipality(self, municipality_id):
        from apps.api.models.municipality import Municipality

        municipality_id = _as_id(municipality_id)
        return db.session.get(Municipality, municipality_id) if municipality_id is not None else None


class StaticGeographyDirectory(BaseGeographyDirectory):
    """In-memory directory built from ``{municipality_id: [barangay_id, ...]}``."""

    def __init__(self, containment: Dict[int, Iterable[int]]):
        self._parents = {}
        self._children = {}
        for municipality_id, barangay_ids in containment.items():
            self._children[municipality_id] = list(barangay_ids)
            for barangay_id in self._children[municipality_id]:
                self._parents[barangay_id] = municipality_id

    def municipality_of(self, barangay_id) -> Optional[int]:
        return self._parents.get(_as_id(barangay_id))

    def list_barangays(self, municipality_id, bounded_only: bool = False) -> list:
        return list(self._children.get(_as_id(municipality_id), []))


def require_known_barangay(value, field: str = 'barangay_id') -> int:
    """Validated id of an existing barangay; unknown ids are a ``ValidationError``."""
    from apps.api.models.municipality import Barangay

    barangay_id = validate_positive_int(value, field)
    if db.session.get(Barangay, barangay_id) is None:
        raise ValidationError('Unknown barangay', field=field)
    return barangay_id
