from types import SimpleNamespace

import httpx
import pytest

from hotsheets.database import (
    HotsheetRepository,
    SupabaseClient,
    SupabaseCoverageAreaStore,
    SupabaseInventoryStore,
)
from hotsheets.errors import TransientStoreError
from hotsheets.matching import SortOrder
from hotsheets.matching.predicates import Eq
from hotsheets.models import Criteria, HotsheetSubscription
from hotsheets.notifications import SupabaseFunctionDispatcher


def response(data=None, count=None):
    return SimpleNamespace(data=data, count=count)


class FakeQuery:
    def __init__(self, responses, log):
        self._responses = responses
        self._log = log

    def execute(self):
        result = self._responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    def __getattr__(self, name):
        def method(*args, **kwargs):
            self._log.append((name, *args))
            return self

        return method


class FakeSupabase:
    """Cliente de supabase-py falso: cada execute consume una respuesta."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []
        self.invocations = []
        self.functions = SimpleNamespace(invoke=self._invoke)

    def table(self, name):
        self.calls.append(("table", name))
        return FakeQuery(self.responses, self.calls)

    def rpc(self, name, params):
        self.calls.append(("rpc", name, params))
        return FakeQuery(self.responses, self.calls)

    def _invoke(self, name, invoke_options):
        self.invocations.append((name, invoke_options))
        return b"{}"


def make_client(*responses, attempts=3):
    fake = FakeSupabase(*responses)
    return SupabaseClient(fake, retry_attempts=attempts, retry_max_wait=0), fake


class TestSupabaseClient:
    def test_transport_error_is_retried(self):
        client, fake = make_client(
            httpx.ConnectError("connection refused"), response(data=[{"id": "L1"}])
        )
        result = client.execute(fake.table("listings"))
        assert result.data == [{"id": "L1"}]
        assert fake.responses == []

    def test_exhausted_retries_raise_transient_error(self):
        client, fake = make_client(
            httpx.ReadTimeout("timeout"),
            httpx.ReadTimeout("timeout"),
            attempts=2,
        )
        with pytest.raises(TransientStoreError) as excinfo:
            client.execute(fake.table("listings"), operation="listings.fetch")
        assert excinfo.value.operation == "listings.fetch"
        assert isinstance(excinfo.value.__cause__, httpx.ReadTimeout)

    def test_non_transport_errors_are_not_retried(self):
        client, fake = make_client(ValueError("bad filter"), response(data=[]))
        with pytest.raises(ValueError):
            client.execute(fake.table("listings"))
        assert len(fake.responses) == 1


class TestSupabaseInventoryStore:
    def test_fetch_applies_filters_order_and_limit(self):
        client, fake = make_client(response(data=[{"id": "L2"}]))
        store = SupabaseInventoryStore(client=client)

        rows = store.fetch(Eq("state", "MA"), SortOrder("price", False), 25)

        assert rows == [{"id": "L2"}]
        assert fake.calls == [
            ("table", "listings"),
            ("select", SupabaseInventoryStore.COLUMNS),
            ("eq", "state", "MA"),
            ("order", "price"),
            ("order", "id"),
            ("limit", 25),
        ]

    def test_count_reads_exact_count_without_rows(self):
        client, fake = make_client(response(data=[], count=7))
        store = SupabaseInventoryStore(client=client)
        assert store.count(Eq("state", "MA")) == 7
        assert ("select", "id") in fake.calls

    def test_missing_count_is_zero(self):
        client, _ = make_client(response(data=None, count=None))
        assert SupabaseInventoryStore(client=client).count(Eq("state", "MA")) == 0


class TestSupabaseCoverageAreaStore:
    def test_reads_every_page(self):
        first = [{"agent_id": "a1"}, {"agent_id": "a2"}]
        second = [{"agent_id": "a3"}]
        client, fake = make_client(response(data=first), response(data=second))
        store = SupabaseCoverageAreaStore(client=client)
        store.PAGE_SIZE = 2

        rows = store.fetch(Eq("state", "MA"))

        assert [r["agent_id"] for r in rows] == ["a1", "a2", "a3"]
        assert ("range", 0, 1) in fake.calls
        assert ("range", 2, 3) in fake.calls

    def test_owner_ids_reads_only_the_owner_column(self):
        first = [{"agent_id": "a1"}, {"agent_id": "a2"}]
        second = [{"agent_id": "a1"}, {"agent_id": None}]
        client, fake = make_client(
            response(data=first), response(data=second), response(data=[])
        )
        store = SupabaseCoverageAreaStore(client=client)
        store.PAGE_SIZE = 2

        owners = store.owner_ids(Eq("state", "MA"))

        assert owners == {"a1", "a2"}
        assert ("select", "agent_id") in fake.calls
        assert ("select", SupabaseCoverageAreaStore.COLUMNS) not in fake.calls


class TestHotsheetRepository:
    def test_append_delivered_uses_atomic_rpc(self):
        client, fake = make_client(response(data=["L1", "L2"]))
        repo = HotsheetRepository(client=client)

        delivered = repo.append_delivered("hs-1", ["L2"])

        assert delivered == ["L1", "L2"]
        assert fake.calls[0] == (
            "rpc",
            "append_hot_sheet_deliveries",
            {"p_hot_sheet_id": "hs-1", "p_listing_ids": ["L2"]},
        )

    def test_append_delivered_on_missing_hotsheet(self):
        client, _ = make_client(response(data=None))
        assert HotsheetRepository(client=client).append_delivered("nope", ["L1"]) is None

    def test_replace_criteria_is_conditional_on_version(self):
        client, fake = make_client(response(data=[]))
        repo = HotsheetRepository(client=client)

        assert repo.replace_criteria("hs-1", {"state": "MA"}, 3) is None
        assert ("eq", "id", "hs-1") in fake.calls
        assert ("eq", "version", 3) in fake.calls

    def test_create_returns_inserted_row(self):
        row = {"id": "hs-9", "user_id": "u1", "name": "Back Bay"}
        client, _ = make_client(response(data=[row]))
        hotsheet = HotsheetSubscription(owner_id="u1", name="Back Bay", criteria=Criteria())
        assert HotsheetRepository(client=client).create(hotsheet) == row

    def test_delete_reports_missing_rows(self):
        client, _ = make_client(response(data=[]))
        assert HotsheetRepository(client=client).delete("nope") is False


def test_function_dispatcher_sends_selection():
    client, fake = make_client()
    dispatcher = SupabaseFunctionDispatcher(client=client, function_name="process-hot-sheet")

    dispatcher.dispatch("hs-1", ["L2", "L9"])

    assert fake.invocations == [
        (
            "process-hot-sheet",
            {
                "body": {
                    "hotSheetId": "hs-1",
                    "sendInitialBatch": True,
                    "selectedListingIds": ["L2", "L9"],
                }
            },
        )
    ]
