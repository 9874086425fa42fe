"""Tests specific to the in-memory policy store."""

import threading

from accessmatrix.core.errors import StaleVersion
from accessmatrix.core.rbac.roles import Role
from accessmatrix.store import InMemoryPolicyStore, UpsertAccessOverride


class TestInMemoryPolicyStore:
    """Test the dictionary-backed store."""

    def test_backend_name(self, memory_store):
        assert memory_store.backend_name == "memory"

    def test_snapshot_is_detached(self, memory_store):
        memory_store.create_household("h")
        memory_store.apply_batch("h", 0, [UpsertAccessOverride("meals.cocktails", Role.MEMBER, True)])
        policy = memory_store.snapshot("h")

        memory_store.apply_batch("h", 1, [UpsertAccessOverride("meals.cocktails", Role.MEMBER, False)])

        assert policy.version == 1
        assert policy.overrides[0].allowed is True

    def test_clear(self, memory_store):
        memory_store.create_household("h")
        memory_store.apply_batch("h", 0, [])
        memory_store.clear()
        assert memory_store.get_version("h") == 0

    def test_concurrent_writers_one_wins(self):
        """Writers racing on the same version: exactly one succeeds."""
        store = InMemoryPolicyStore()
        store.create_household("h")
        results = []
        barrier = threading.Barrier(8)

        def writer(i):
            barrier.wait()
            try:
                store.apply_batch("h", 0, [
                    UpsertAccessOverride(f"feature.{i}", Role.MEMBER, True)
                ])
                results.append("ok")
            except StaleVersion:
                results.append("stale")

        threads = [threading.Thread(target=writer, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count("ok") == 1
        assert results.count("stale") == 7
        assert store.get_version("h") == 1
        assert len(store.get_overrides("h")) == 1
