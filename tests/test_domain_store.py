from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from blockwatch.store import (
    ADDED,
    DUPLICATE,
    EMPTY_LIST_TEXT,
    NOT_FOUND,
    REMOVED,
    USAGE,
    FileDomainStore,
    MemoryDomainStore,
    StoreUnavailable,
)


def test_missing_file_reads_as_empty_list(tmp_path: Path) -> None:
    store = FileDomainStore(tmp_path / "domains.txt")
    assert store.read_all() == []
    assert store.list_all() == EMPTY_LIST_TEXT


def test_add_persists_in_insertion_order(tmp_path: Path) -> None:
    path = tmp_path / "domains.txt"
    store = FileDomainStore(path)

    assert store.add("b.com").kind == ADDED
    assert store.add("a.com").kind == ADDED

    assert path.read_text(encoding="utf-8") == "b.com\na.com"
    assert FileDomainStore(path).read_all() == ["b.com", "a.com"]
    assert store.list_all() == "b.com\na.com"


def test_add_duplicate_leaves_file_unchanged(tmp_path: Path) -> None:
    path = tmp_path / "domains.txt"
    store = FileDomainStore(path)
    store.add("example.com")
    before = path.read_text(encoding="utf-8")

    outcome = store.add("example.com")

    assert outcome.kind == DUPLICATE
    assert "already in the list" in outcome.message
    assert path.read_text(encoding="utf-8") == before
    assert store.read_all().count("example.com") == 1


def test_duplicate_match_is_case_sensitive() -> None:
    store = MemoryDomainStore(["example.com"])
    assert store.add("Example.com").kind == ADDED
    assert store.read_all() == ["example.com", "Example.com"]


def test_remove_missing_domain_is_not_found(tmp_path: Path) -> None:
    path = tmp_path / "domains.txt"
    store = FileDomainStore(path)
    store.add("a.com")
    before = path.read_text(encoding="utf-8")

    outcome = store.remove("b.com")

    assert outcome.kind == NOT_FOUND
    assert "not found" in outcome.message
    assert path.read_text(encoding="utf-8") == before


def test_add_then_remove_restores_previous_list(tmp_path: Path) -> None:
    path = tmp_path / "domains.txt"
    store = FileDomainStore(path)
    store.add("a.com")
    store.add("b.com")
    before = store.read_all()

    assert store.add("c.com").kind == ADDED
    assert store.remove("c.com").kind == REMOVED
    assert store.read_all() == before


def test_remove_keeps_order_of_remaining_domains() -> None:
    store = MemoryDomainStore(["a.com", "b.com", "c.com"])
    outcome = store.remove("b.com")
    assert outcome.changed is True
    assert store.read_all() == ["a.com", "c.com"]


@pytest.mark.parametrize("arg", ["", "   ", None, "a.com b.com", "a.com\nb.com"])
def test_invalid_argument_is_usage_error(arg: str | None) -> None:
    store = MemoryDomainStore(["a.com"])
    add = store.add(arg)
    remove = store.remove(arg)
    assert add.kind == USAGE
    assert remove.kind == USAGE
    assert add.message.startswith("Usage: /add")
    assert remove.message.startswith("Usage: /remove")
    assert store.read_all() == ["a.com"]


def test_surrounding_whitespace_is_stripped() -> None:
    store = MemoryDomainStore()
    assert store.add("  example.com \n").domain == "example.com"
    assert store.remove(" example.com").kind == REMOVED


def test_file_with_blank_lines_and_duplicates_is_normalized(tmp_path: Path) -> None:
    path = tmp_path / "domains.txt"
    path.write_text("a.com\n\n b.com \na.com\n", encoding="utf-8")
    assert FileDomainStore(path).read_all() == ["a.com", "b.com"]


def test_unreadable_file_raises_store_unavailable(tmp_path: Path) -> None:
    # A directory at the list path cannot be read as text.
    path = tmp_path / "domains.txt"
    path.mkdir()
    store = FileDomainStore(path)
    with pytest.raises(StoreUnavailable):
        store.read_all()
    with pytest.raises(StoreUnavailable):
        store.list_all()


def test_failed_write_does_not_commit_addition(tmp_path: Path) -> None:
    # The parent directory does not exist, so the rewrite fails.
    path = tmp_path / "missing-dir" / "domains.txt"
    store = FileDomainStore(path)
    with pytest.raises(StoreUnavailable):
        store.add("a.com")
    assert store.read_all() == []


def test_concurrent_adds_of_same_domain_commit_once(tmp_path: Path) -> None:
    path = tmp_path / "domains.txt"
    store = FileDomainStore(path)

    with ThreadPoolExecutor(max_workers=16) as pool:
        outcomes = list(pool.map(lambda _: store.add("x.com"), range(64)))

    kinds = [o.kind for o in outcomes]
    assert kinds.count(ADDED) == 1
    assert kinds.count(DUPLICATE) == 63
    assert path.read_text(encoding="utf-8").splitlines() == ["x.com"]


def test_concurrent_add_remove_never_tears_the_file(tmp_path: Path) -> None:
    path = tmp_path / "domains.txt"
    store = FileDomainStore(path)
    names = [f"site{i}.example" for i in range(20)]
    valid = set(names)
    stop = threading.Event()
    observed: list[list[str]] = []

    def reader() -> None:
        while not stop.is_set():
            observed.append(store.read_all())
            # Unlocked read of the file itself: the rename swap must never expose a partial write.
            if path.exists():
                observed.append(path.read_text(encoding="utf-8").splitlines())

    def churn(name: str) -> None:
        for _ in range(10):
            store.add(name)
            store.remove(name)
        store.add(name)

    watcher = threading.Thread(target=reader, daemon=True)
    watcher.start()
    try:
        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(churn, names))
    finally:
        stop.set()
        watcher.join(timeout=5)

    assert observed
    for snapshot in observed:
        assert set(snapshot) <= valid
        assert len(snapshot) == len(set(snapshot))

    final = path.read_text(encoding="utf-8").splitlines()
    assert sorted(final) == sorted(names)
