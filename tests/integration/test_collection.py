"""Integration tests for the canonical record list."""

import asyncio
from typing import Dict, List, Optional

import httpx
import pytest
import respx

from biblio_sync.client import ApiClient, BibliographyApi
from biblio_sync.client.errors import NoConnectivityError, NotFoundError, PreconditionError, ServerError
from biblio_sync.core.models import (
    BibliographyDraft,
    BibliographyListResponse,
    BibliographyRecord,
    FilterCriteria,
)
from biblio_sync.sync import ListState, RemoteCollection

from tests.payloads import BASE_URL, item_json, page_json, record_json

pytestmark = pytest.mark.integration


def _ids(records):
    return [r.id for r in records]


def _two_pages(request: httpx.Request) -> httpx.Response:
    page = int(request.url.params["page"])
    if page == 1:
        body = page_json(
            [record_json("1", "One"), record_json("2", "Two")],
            page=1, total_count=3, total_pages=2, has_next=True,
        )
    else:
        body = page_json([record_json("3", "Three")], page=2, total_count=3, total_pages=2)
    return httpx.Response(200, json=body)


class TestLoading:
    """Tests for page loading and refresh."""

    @pytest.mark.asyncio
    async def test_first_page_then_next_appends(self, config) -> None:
        with respx.mock(base_url=BASE_URL) as router:
            route = router.get("/bibliography").mock(side_effect=_two_pages)
            async with ApiClient(config) as client:
                collection = RemoteCollection(BibliographyApi(client), config=config)

                await collection.load_page(1)
                assert _ids(collection.records) == ["1", "2"]
                assert collection.has_next_page
                assert collection.total_count == 3

                await collection.load_next()
                assert _ids(collection.records) == ["1", "2", "3"]
                assert collection.current_page == 2
                assert not collection.has_next_page

                # Last page reached: no request goes out
                await collection.load_next()

        assert route.call_count == 2
        assert route.calls[0].request.url.params["limit"] == "20"

    @pytest.mark.asyncio
    async def test_refresh_replaces_list(self, config) -> None:
        with respx.mock(base_url=BASE_URL) as router:
            router.get("/bibliography").mock(side_effect=_two_pages)
            async with ApiClient(config) as client:
                collection = RemoteCollection(BibliographyApi(client), config=config)
                await collection.load_page(1)
                await collection.load_next()
                await collection.refresh()

        assert _ids(collection.records) == ["1", "2"]
        assert collection.current_page == 1

    @pytest.mark.asyncio
    async def test_page_size_override(self, config) -> None:
        with respx.mock(base_url=BASE_URL) as router:
            route = router.get("/bibliography").mock(return_value=httpx.Response(200, json=page_json([])))
            async with ApiClient(config) as client:
                collection = RemoteCollection(BibliographyApi(client), page_size=5, config=config)
                await collection.refresh()

        assert route.calls.last.request.url.params["limit"] == "5"
        assert collection.records == ()
        assert collection.state == ListState.POPULATED

    @pytest.mark.asyncio
    async def test_page_zero_rejected(self, config) -> None:
        async with ApiClient(config) as client:
            collection = RemoteCollection(BibliographyApi(client), config=config)
            with pytest.raises(PreconditionError):
                await collection.load_page(0)

        assert collection.error == "Page numbers start at 1"
        assert collection.records == ()
        assert not collection.is_loading

    @pytest.mark.asyncio
    async def test_two_records_single_page(self, config) -> None:
        payload = page_json(
            [record_json("a", "Alpha", isbn=1234567890), record_json("b", "Beta", issn="0317-8471")],
        )
        with respx.mock(base_url=BASE_URL) as router:
            router.get("/bibliography").mock(return_value=httpx.Response(200, json=payload))
            async with ApiClient(config) as client:
                collection = RemoteCollection(BibliographyApi(client), config=config)
                await collection.refresh()

        assert collection.total_count == 2
        assert not collection.has_next_page
        assert collection.lookup("a").isbn == "1234567890"
        assert collection.lookup("b").issn == "0317-8471"


class TestSearch:
    @pytest.mark.asyncio
    async def test_search_replaces_with_server_results(self, config) -> None:
        with respx.mock(base_url=BASE_URL) as router:
            router.get("/bibliography").mock(side_effect=_two_pages)
            search_route = router.get("/bibliography/search").mock(
                return_value=httpx.Response(
                    200,
                    json=page_json([record_json("9", "Quechua Grammar")], search={"query": "quechua"}),
                )
            )
            async with ApiClient(config) as client:
                collection = RemoteCollection(BibliographyApi(client), config=config)
                await collection.refresh()
                await collection.search("quechua", FilterCriteria(keywords=["grammar"]))

        assert _ids(collection.records) == ["9"]
        assert collection.total_count == 1
        params = search_route.calls.last.request.url.params
        assert params["q"] == "quechua"
        assert params["keywords"] == "grammar"
        assert params["page"] == "1"

    @pytest.mark.asyncio
    async def test_load_next_pages_search_not_list(self, config) -> None:
        with respx.mock(base_url=BASE_URL, assert_all_called=False) as router:
            list_route = router.get("/bibliography").mock(side_effect=_two_pages)
            search_route = router.get("/bibliography/search").mock(side_effect=_two_pages)
            async with ApiClient(config) as client:
                collection = RemoteCollection(BibliographyApi(client), config=config)
                await collection.search("one", FilterCriteria(year=2020))
                await collection.load_next()

        assert _ids(collection.records) == ["1", "2", "3"]
        assert collection.active_query == "one"
        assert list_route.call_count == 0
        params = search_route.calls.last.request.url.params
        assert params["q"] == "one"
        assert params["year"] == "2020"
        assert params["page"] == "2"

    @pytest.mark.asyncio
    async def test_failed_search_keeps_list_mode(self, config) -> None:
        with respx.mock(base_url=BASE_URL) as router:
            list_route = router.get("/bibliography").mock(side_effect=_two_pages)
            router.get("/bibliography/search").mock(return_value=httpx.Response(500))
            async with ApiClient(config) as client:
                collection = RemoteCollection(BibliographyApi(client), config=config)
                await collection.refresh()
                await collection.search("boom")
                await collection.load_next()

        assert collection.active_query is None
        assert list_route.call_count == 2
        assert _ids(collection.records) == ["1", "2", "3"]

    @pytest.mark.asyncio
    async def test_reset_leaves_search(self, config) -> None:
        with respx.mock(base_url=BASE_URL) as router:
            router.get("/bibliography/search").mock(side_effect=_two_pages)
            async with ApiClient(config) as client:
                collection = RemoteCollection(BibliographyApi(client), config=config)
                await collection.search("one")
                collection.reset()

        assert collection.active_query is None
        assert collection.records == ()


class TestMutations:
    """Tests for create, update and delete."""

    @pytest.mark.asyncio
    async def test_create_inserts_at_front(self, config) -> None:
        with respx.mock(base_url=BASE_URL) as router:
            router.get("/bibliography").mock(side_effect=_two_pages)
            route = router.post("/bibliography").mock(
                return_value=httpx.Response(201, json=item_json(record_json("new", "Fresh", "Roe, R")))
            )
            async with ApiClient(config) as client:
                collection = RemoteCollection(BibliographyApi(client), config=config)
                await collection.refresh()
                created = await collection.create(BibliographyDraft(title="Fresh", author="Roe, R", year="2021"))

        assert created.id == "new"
        assert _ids(collection.records) == ["new", "1", "2"]
        assert collection.lookup("new") == created
        # Counts are reconciled by the next refresh
        assert collection.total_count == 3
        sent = route.calls.last.request
        assert b'"year":2021' in sent.content.replace(b" ", b"")

    @pytest.mark.asyncio
    async def test_create_invalid_draft_sends_nothing(self, config) -> None:
        with respx.mock(base_url=BASE_URL, assert_all_called=False) as router:
            route = router.post("/bibliography")
            async with ApiClient(config) as client:
                collection = RemoteCollection(BibliographyApi(client), config=config)
                with pytest.raises(PreconditionError):
                    await collection.create(BibliographyDraft(title="  ", author="Somebody"))

        assert not route.called
        assert collection.error == "Title and author are required"
        assert collection.records == ()

    @pytest.mark.asyncio
    async def test_update_without_id_sends_nothing(self, config) -> None:
        with respx.mock(base_url=BASE_URL, assert_all_called=False) as router:
            route = router.route(method="PUT")
            async with ApiClient(config) as client:
                collection = RemoteCollection(BibliographyApi(client), config=config)
                with pytest.raises(PreconditionError):
                    await collection.update(BibliographyRecord(title="T", author="A"))

        assert not route.called
        assert collection.error is not None

    @pytest.mark.asyncio
    async def test_update_replaces_in_place(self, config) -> None:
        with respx.mock(base_url=BASE_URL) as router:
            router.get("/bibliography").mock(side_effect=_two_pages)
            route = router.put("/bibliography/2").mock(
                return_value=httpx.Response(200, json=item_json(record_json("2", "Two, revised")))
            )
            async with ApiClient(config) as client:
                collection = RemoteCollection(BibliographyApi(client), config=config)
                await collection.refresh()
                edited = collection.lookup("2").model_copy(update={"title": "Two, revised"})
                updated = await collection.update(edited)

        assert updated.title == "Two, revised"
        assert [r.title for r in collection.records] == ["One", "Two, revised"]
        body = route.calls.last.request.content
        assert b"_id" not in body
        assert b"created_at" not in body

    @pytest.mark.asyncio
    async def test_delete_removes_record(self, config) -> None:
        with respx.mock(base_url=BASE_URL) as router:
            router.get("/bibliography").mock(side_effect=_two_pages)
            router.delete("/bibliography/1").mock(return_value=httpx.Response(200, json={"success": True}))
            async with ApiClient(config) as client:
                collection = RemoteCollection(BibliographyApi(client), config=config)
                await collection.refresh()
                await collection.delete("1")

        assert _ids(collection.records) == ["2"]
        assert not collection.contains("1")

    @pytest.mark.asyncio
    async def test_delete_absent_id_still_calls_server(self, config) -> None:
        emitted = []
        with respx.mock(base_url=BASE_URL) as router:
            router.get("/bibliography").mock(side_effect=_two_pages)
            route = router.delete("/bibliography/ghost").mock(return_value=httpx.Response(204))
            async with ApiClient(config) as client:
                collection = RemoteCollection(BibliographyApi(client), config=config)
                await collection.refresh()
                collection.records_changed.connect(emitted.append)
                await collection.delete("ghost")

        assert route.call_count == 1
        assert _ids(collection.records) == ["1", "2"]
        assert emitted == []

    @pytest.mark.asyncio
    async def test_delete_empty_id_rejected(self, config) -> None:
        async with ApiClient(config) as client:
            collection = RemoteCollection(BibliographyApi(client), config=config)
            with pytest.raises(PreconditionError):
                await collection.delete("")

    @pytest.mark.asyncio
    async def test_mutation_failure_recorded_and_raised(self, config) -> None:
        with respx.mock(base_url=BASE_URL) as router:
            router.get("/bibliography").mock(side_effect=_two_pages)
            router.delete("/bibliography/1").mock(return_value=httpx.Response(404))
            async with ApiClient(config) as client:
                collection = RemoteCollection(BibliographyApi(client), config=config)
                await collection.refresh()
                with pytest.raises(NotFoundError):
                    await collection.delete("1")

        assert collection.error == "Resource not found"
        assert _ids(collection.records) == ["1", "2"]
        assert not collection.is_loading


class TestErrors:
    @pytest.mark.asyncio
    async def test_load_failure_recorded_not_raised(self, config) -> None:
        with respx.mock(base_url=BASE_URL) as router:
            router.get("/bibliography").mock(return_value=httpx.Response(500))
            async with ApiClient(config) as client:
                collection = RemoteCollection(BibliographyApi(client), config=config)
                await collection.refresh()

        assert collection.error == "Server error"
        assert collection.state == ListState.ERRORED
        assert not collection.is_loading
        assert collection.records == ()

    @pytest.mark.asyncio
    async def test_error_cleared_by_next_success(self, config) -> None:
        with respx.mock(base_url=BASE_URL) as router:
            router.get("/bibliography").mock(
                side_effect=[httpx.ConnectError("down"), httpx.Response(200, json=page_json([record_json("1", "One")]))]
            )
            async with ApiClient(config) as client:
                collection = RemoteCollection(BibliographyApi(client), config=config)
                await collection.refresh()
                assert collection.error == "No internet connection"
                await collection.refresh()

        assert collection.error is None
        assert collection.state == ListState.POPULATED
        assert _ids(collection.records) == ["1"]

    @pytest.mark.asyncio
    async def test_clear_error(self, config) -> None:
        with respx.mock(base_url=BASE_URL) as router:
            router.get("/bibliography/x").mock(side_effect=httpx.ConnectError("down"))
            async with ApiClient(config) as client:
                collection = RemoteCollection(BibliographyApi(client), config=config)
                with pytest.raises(NoConnectivityError):
                    await collection.get("x")
                assert collection.error == "No internet connection"
                collection.clear_error()

        assert collection.error is None

    @pytest.mark.asyncio
    async def test_state_transitions(self, config) -> None:
        states = []
        with respx.mock(base_url=BASE_URL) as router:
            router.get("/bibliography").mock(side_effect=_two_pages)
            async with ApiClient(config) as client:
                collection = RemoteCollection(BibliographyApi(client), config=config)
                collection.state_changed.connect(lambda c: states.append((c.state, c.is_loading)))
                assert collection.state == ListState.IDLE
                await collection.refresh()

        assert states[0] == (ListState.LOADING, True)
        assert states[-1] == (ListState.POPULATED, False)


class FakeApi:
    """Stands in for BibliographyApi; each query waits for its own gate."""

    def __init__(self) -> None:
        self.gates: Dict[str, asyncio.Event] = {}
        self.calls: List[str] = []

    def gate(self, query: str) -> asyncio.Event:
        return self.gates.setdefault(query, asyncio.Event())

    async def search(self, query: str, page: int, limit: int, criteria: Optional[FilterCriteria] = None):
        self.calls.append(query)
        await self.gate(query).wait()
        return BibliographyListResponse.model_validate(page_json([record_json(query, query.title())]))

    async def fetch_page(self, page: int, limit: int):
        self.calls.append(f"page {page}")
        await self.gate(f"page {page}").wait()
        records = [record_json(f"p{page}", f"Page {page}")]
        return BibliographyListResponse.model_validate(
            page_json(records, page=page, total_count=2, total_pages=2, has_next=page < 2)
        )


class TestOverlappingLoads:
    @pytest.mark.asyncio
    async def test_superseded_response_discarded(self, config) -> None:
        api = FakeApi()
        collection = RemoteCollection(api, config=config)

        slow = asyncio.create_task(collection.search("slow"))
        await asyncio.sleep(0)
        fast = asyncio.create_task(collection.search("fast"))
        await asyncio.sleep(0)
        assert collection.is_loading

        api.gate("fast").set()
        await fast
        assert _ids(collection.records) == ["fast"]
        # The older search is still in flight
        assert collection.is_loading

        api.gate("slow").set()
        await slow
        assert _ids(collection.records) == ["fast"]
        assert not collection.is_loading
        assert api.calls == ["slow", "fast"]

    @pytest.mark.asyncio
    async def test_load_next_ignored_while_loading(self, config) -> None:
        api = FakeApi()
        collection = RemoteCollection(api, config=config)
        api.gate("page 1").set()
        await collection.refresh()
        assert collection.has_next_page

        first = asyncio.create_task(collection.load_next())
        await asyncio.sleep(0)
        assert collection.is_loading
        await collection.load_next()
        assert api.calls == ["page 1", "page 2"]

        api.gate("page 2").set()
        await first
        assert _ids(collection.records) == ["p1", "p2"]
        assert not collection.is_loading

    @pytest.mark.asyncio
    async def test_reset_drops_in_flight_load(self, config) -> None:
        api = FakeApi()
        collection = RemoteCollection(api, config=config)

        task = asyncio.create_task(collection.refresh())
        await asyncio.sleep(0)
        collection.reset()
        api.gate("page 1").set()
        await task

        assert collection.records == ()
        assert collection.state == ListState.IDLE

    @pytest.mark.asyncio
    async def test_superseded_failure_not_recorded(self, config) -> None:
        class FailingSlowApi(FakeApi):
            async def search(self, query, page, limit, criteria=None):
                if query == "slow":
                    await self.gate("slow").wait()
                    raise ServerError()
                return await super().search(query, page, limit, criteria)

        api = FailingSlowApi()
        collection = RemoteCollection(api, config=config)
        slow = asyncio.create_task(collection.search("slow"))
        await asyncio.sleep(0)
        api.gate("fast").set()
        await collection.search("fast")
        api.gate("slow").set()
        await slow

        assert collection.error is None
        assert collection.state == ListState.POPULATED
        assert _ids(collection.records) == ["fast"]
