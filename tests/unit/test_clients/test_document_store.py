"""
Unit tests for clients.document_store.InMemoryDocumentStore.
"""
import asyncio
import os
from datetime import datetime, timezone

import pytest

from clients.document_store import InMemoryDocumentStore
from crawler.errors import ConfigurationError, DuplicateDocumentError
from models.veille_models import Keyword, PersistedDocument, RunLog, RunStatus, Site

SOURCES_PATH = os.path.join(os.path.dirname(__file__), "..", "..", "..", "config", "sources.yaml")


def document(url, title="Circulaire relative aux franchises", source="Douane Test"):
    return PersistedDocument(title=title, source_name=source, source_url=url)


class TestDocuments:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_insert_and_lookup_by_normalized_url(self, store):
        await store.insert(document("https://Douane.example.gov/Circulaires/Franchises/"))

        assert await store.exists_by_normalized_url("https://douane.example.gov/circulaires/franchises")
        assert not await store.exists_by_normalized_url("https://douane.example.gov/circulaires")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_duplicate_insert_rejected(self, store):
        await store.insert(document("https://douane.example.gov/a"))

        with pytest.raises(DuplicateDocumentError):
            await store.insert(document("https://douane.example.gov/a?utm_source=x", title="Autre"))
        assert len(store.documents) == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_concurrent_inserts_keep_one(self, store):
        results = await asyncio.gather(
            *(store.insert(document("https://douane.example.gov/a")) for _ in range(5)),
            return_exceptions=True,
        )

        assert sum(1 for r in results if isinstance(r, DuplicateDocumentError)) == 4
        assert len(store.documents) == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_find_titles(self, store):
        await store.insert(document("https://douane.example.gov/1", title="Circulaire relative aux franchises"))
        await store.insert(document("https://douane.example.gov/2", title="CIRCULAIRE relative au transit"))
        await store.insert(document("https://other.example/3", title="Circulaire relative", source="Autre"))

        titles = await store.find_titles("Douane Test", "circulaire relative")

        assert sorted(titles) == ["CIRCULAIRE relative au transit", "Circulaire relative aux franchises"]
        assert len(await store.find_titles("Douane Test", "circulaire", limit=1)) == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_documents_differing_by_query_are_distinct(self, store):
        base = "https://douane.example.gov/accords/detailAccord.jsf"
        await store.insert(document(f"{base}?pays=TR", title="Accord avec la Turquie"))
        await store.insert(document(f"{base}?pays=EG", title="Accord avec l'Egypte"))

        assert len(store.documents) == 2
        with pytest.raises(DuplicateDocumentError):
            await store.insert(document(f"{base}?utm_medium=email&pays=EG", title="Accord avec l'Egypte"))


class TestSitesAndKeywords:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_active_filters(self):
        store = InMemoryDocumentStore(
            sites=[Site(id="a", name="A", base_url="https://a.example"),
                   Site(id="b", name="B", base_url="https://b.example", is_active=False)],
            keywords=[Keyword(id="k", text="tarif"), Keyword(id="l", text="transit")],
        )

        assert [s.id for s in await store.list_active_sites()] == ["a"]
        assert await store.list_active_sites("b") == []
        assert [k.id for k in await store.list_active_keywords("l")] == ["l"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_update_site(self, store):
        await store.update_site("site-1", last_scrape_status="success", total_documents_found=4)
        await store.update_site("missing", last_scrape_status="error")

        assert store.sites["site-1"].last_scrape_status == "success"
        assert store.sites["site-1"].total_documents_found == 4
        assert "missing" not in store.sites

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_keyword_counters_accumulate(self, store):
        stale = (await store.list_active_keywords("kw-1"))[0]
        searched_at = datetime(2024, 3, 1, tzinfo=timezone.utc)

        await asyncio.gather(
            store.increment_keyword_counters(stale.id, 3, searched_at),
            store.increment_keyword_counters(stale.id, 2, searched_at),
        )
        await store.increment_keyword_counters("missing", 1, searched_at)

        keyword = store.keywords["kw-1"]
        assert keyword.total_searches == 2
        assert keyword.total_results == 5
        assert keyword.last_searched_at == searched_at

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_listed_sites_are_copies(self, store):
        site = (await store.list_active_sites())[0]
        site.name = "changed"

        assert store.sites["site-1"].name == "Douane Test"


class TestRunLogs:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_create_and_finalize(self, store):
        run_log = await store.create_run_log(RunLog())
        assert store.run_logs[run_log.id].status == RunStatus.RUNNING

        await store.finalize_run_log(run_log.model_copy(update={"status": RunStatus.COMPLETED}))
        when = datetime(2024, 3, 1, tzinfo=timezone.utc)
        await store.update_config_last_run(when)

        assert store.run_logs[run_log.id].status == RunStatus.COMPLETED
        assert store.config.last_run_at == when


class TestFromYaml:

    @pytest.mark.unit
    def test_bundled_sources(self):
        store = InMemoryDocumentStore.from_yaml(SOURCES_PATH)

        assert "douane-ma" in store.sites
        assert store.sites["douane-ma"].seed_paths
        assert store.keywords["kw-circulaire-adii"].text == "circulaire ADII"

    @pytest.mark.unit
    def test_custom_file(self, tmp_path):
        path = tmp_path / "sources.yaml"
        path.write_text(
            "sites:\n  - id: s1\n    name: Site\n    base_url: https://s.example\n"
            "keywords:\n  - text: transit\n",
            encoding="utf-8",
        )

        store = InMemoryDocumentStore.from_yaml(str(path))

        assert list(store.sites) == ["s1"]
        assert [k.text for k in store.keywords.values()] == ["transit"]

    @pytest.mark.unit
    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            InMemoryDocumentStore.from_yaml(str(tmp_path / "absent.yaml"))

    @pytest.mark.unit
    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("sites: [unclosed", encoding="utf-8")

        with pytest.raises(ConfigurationError):
            InMemoryDocumentStore.from_yaml(str(path))
