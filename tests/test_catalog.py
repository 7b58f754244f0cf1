"""Tests for the SQLite catalog store."""

import threading

import pytest

from vodmirror.errors import CatalogError, DuplicateTitleError, VideoNotFoundError
from vodmirror.services.catalog import CatalogStore


def test_lookup_returns_inserted_path(catalog):
    catalog.insert("index", "videos/index/index.m3u8")

    assert catalog.exists("index")
    assert catalog.lookup("index") == "videos/index/index.m3u8"


def test_unknown_title(catalog):
    assert not catalog.exists("missing")
    with pytest.raises(VideoNotFoundError):
        catalog.lookup("missing")


def test_title_match_is_exact(catalog):
    catalog.insert("Show", "videos/Show/Show.m3u8")

    assert not catalog.exists("show")
    assert not catalog.exists("Sho")


def test_duplicate_insert_rejected(catalog):
    catalog.insert("index", "videos/index/index.m3u8")

    with pytest.raises(DuplicateTitleError):
        catalog.insert("index", "videos/other/index.m3u8")
    assert catalog.lookup("index") == "videos/index/index.m3u8"


def test_add_if_absent_keeps_first_path(catalog):
    assert catalog.add_if_absent("index", "videos/a/index.m3u8") is True
    assert catalog.add_if_absent("index", "videos/b/index.m3u8") is False

    assert catalog.lookup("index") == "videos/a/index.m3u8"
    assert len(catalog.entries()) == 1


def test_list_titles(catalog):
    assert catalog.list_titles() == []

    catalog.insert("one", "videos/one/one.m3u8")
    catalog.insert("two", "videos/two/two.m3u8")

    assert set(catalog.list_titles()) == {"one", "two"}


def test_catalog_persists_across_reopen(settings):
    store = CatalogStore.open(settings.database_url)
    store.insert("index", "videos/index/index.m3u8")
    store.close()

    reopened = CatalogStore.open(settings.database_url)
    try:
        assert reopened.lookup("index") == "videos/index/index.m3u8"
    finally:
        reopened.close()


def test_open_failure_raises_catalog_error(tmp_path):
    with pytest.raises(CatalogError):
        CatalogStore.open(f"sqlite:///{tmp_path / 'missing' / 'videos.db'}")


def test_concurrent_add_if_absent(catalog):
    results = []
    barrier = threading.Barrier(8)

    def worker(i):
        barrier.wait()
        results.append(catalog.add_if_absent("shared", f"videos/shared{i}/shared.m3u8"))
        catalog.add_if_absent(f"title{i}", f"videos/title{i}/title{i}.m3u8")

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count(True) == 1
    assert set(catalog.list_titles()) == {"shared"} | {f"title{i}" for i in range(8)}
