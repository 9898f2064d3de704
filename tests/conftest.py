import copy

import pytest

from hotsheets.config import get_settings
from hotsheets.database.stores import CoverageAreaStore, InventoryStore
from hotsheets.matching import HotsheetRegistry, MatchEvaluator
from hotsheets.matching.predicates import matches


@pytest.fixture(autouse=True)
def settings_env(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "http://localhost:54321")
    monkeypatch.setenv("SUPABASE_KEY", "test-anon-key")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class MemoryInventoryStore(InventoryStore):
    """Inventario en memoria que evalúa el AST con `matches`."""

    def __init__(self, rows):
        self.rows = [dict(r) for r in rows]
        self.fetch_calls = []
        self.count_calls = 0

    def fetch(self, predicate, sort, limit):
        self.fetch_calls.append((predicate, sort, limit))
        hits = sorted(
            (r for r in self.rows if matches(predicate, r)), key=lambda r: r["id"]
        )
        present = [r for r in hits if r.get(sort.column) is not None]
        missing = [r for r in hits if r.get(sort.column) is None]
        # sort estable: los empates quedan por id ascendente
        present.sort(key=lambda r: r[sort.column], reverse=sort.descending)
        return [dict(r) for r in (present + missing)[:limit]]

    def count(self, predicate):
        self.count_calls += 1
        return sum(1 for r in self.rows if matches(predicate, r))


class MemoryCoverageAreaStore(CoverageAreaStore):
    def __init__(self, rows):
        self.rows = [dict(r) for r in rows]

    def fetch(self, predicate):
        return [dict(r) for r in self.rows if matches(predicate, r)]


class MemoryHotsheetRepository:
    """Mismo contrato que HotsheetRepository, sobre un dict."""

    def __init__(self):
        self.rows = {}
        self._seq = 0

    def create(self, hotsheet):
        self._seq += 1
        row = hotsheet.to_db_dict()
        row["id"] = f"hs-{self._seq}"
        self.rows[row["id"]] = row
        return copy.deepcopy(row)

    def get_by_id(self, hotsheet_id):
        row = self.rows.get(hotsheet_id)
        return copy.deepcopy(row) if row else None

    def get_by_owner(self, owner_id):
        return [copy.deepcopy(r) for r in self.rows.values() if r["user_id"] == owner_id]

    def replace_criteria(self, hotsheet_id, criteria_document, expected_version):
        row = self.rows.get(hotsheet_id)
        if row is None or row["version"] != expected_version:
            return None
        row["criteria"] = copy.deepcopy(criteria_document)
        row["version"] = expected_version + 1
        return copy.deepcopy(row)

    def set_active(self, hotsheet_id, is_active):
        row = self.rows.get(hotsheet_id)
        if row is None:
            return None
        row["is_active"] = is_active
        return copy.deepcopy(row)

    def delete(self, hotsheet_id):
        return self.rows.pop(hotsheet_id, None) is not None

    def append_delivered(self, hotsheet_id, listing_ids):
        row = self.rows.get(hotsheet_id)
        if row is None:
            return None
        row["delivered_listing_ids"] = sorted(
            set(row["delivered_listing_ids"]) | set(listing_ids)
        )
        return list(row["delivered_listing_ids"])


class RecordingDispatcher:
    def __init__(self, error=None):
        self.calls = []
        self.error = error

    def dispatch(self, hotsheet_id, listing_ids):
        if self.error is not None:
            raise self.error
        self.calls.append((hotsheet_id, list(listing_ids)))


def make_listing(listing_id, **fields):
    row = {
        "id": listing_id,
        "state": "MA",
        "status": "active",
        "neighborhood": None,
        "created_at": "2026-01-01T00:00:00+00:00",
    }
    row.update(fields)
    return row


@pytest.fixture
def listing_rows():
    return [
        make_listing(
            "L1",
            city="Boston",
            price=800000,
            property_type="Single Family",
            bedrooms=3,
            bathrooms=2,
            square_feet=1800,
            year_built=1990,
            total_parking_spaces=2,
            address="12 Beacon St",
            zip_code="02108",
            description="Sunny colonial with garage",
            created_at="2026-01-01T00:00:00+00:00",
        ),
        make_listing(
            "L2",
            city="Boston",
            neighborhood="Back Bay",
            price=1200000,
            property_type="Condominium",
            bedrooms=2,
            bathrooms=2,
            square_feet=1200,
            year_built=1905,
            total_parking_spaces=0,
            address="200 Commonwealth Ave",
            zip_code="02116",
            description="Brownstone condo with roof deck",
            created_at="2026-01-02T00:00:00+00:00",
        ),
        make_listing(
            "L3",
            city="Cambridge",
            price=2000000,
            property_type="Multi Family",
            bedrooms=6,
            bathrooms=3,
            square_feet=3200,
            year_built=1920,
            total_parking_spaces=3,
            address="5 Brattle St",
            zip_code="02138",
            description="Three family near the square, pool",
            created_at="2026-01-03T00:00:00+00:00",
        ),
    ]


@pytest.fixture
def inventory(listing_rows):
    return MemoryInventoryStore(listing_rows)


@pytest.fixture
def evaluator(inventory):
    return MatchEvaluator(
        store=inventory,
        max_results=500,
        default_statuses=["active", "coming_soon"],
    )


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def repository():
    return MemoryHotsheetRepository()


@pytest.fixture
def registry(repository, evaluator, dispatcher):
    return HotsheetRegistry(
        repository=repository,
        evaluator=evaluator,
        dispatcher=dispatcher,
        review_limit=200,
    )
