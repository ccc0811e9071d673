"""Tests for mark-and-sweep garbage collection of unreferenced blobs."""

from __future__ import annotations

from buildrepro.core.gc import collect_garbage


class TestCollectGarbage:
    def test_removes_only_unreferenced(self, ingestor, catalog, store, make_record):
        kept = ingestor.ingest(make_record(hours=0, binary=b"shared"))
        gone = ingestor.ingest(make_record(hours=1, binary=b"only-in-gone"))
        orphan = store.put(b"left by a rejected upload")

        report = catalog.remove_build(gone.uuid)
        gc = collect_garbage(catalog, store)

        assert set(gc.removed) == {gone.main_binary.sha256, orphan.sha256}
        assert gc.bytes_freed == len(b"only-in-gone") + len(b"left by a rejected upload")
        for artifact in catalog.build_artifacts(kept.uuid):
            assert store.exists(artifact.sha256)
        # the environment blob is shared with the kept build
        assert report.sha256s - set(gc.removed) == {
            catalog.get_artifact(kept.uuid, "build-environment").sha256
        }

    def test_dry_run_deletes_nothing(self, catalog, store):
        orphan = store.put(b"orphan")
        gc = collect_garbage(catalog, store, dry_run=True)
        assert gc.dry_run is True
        assert gc.removed == [orphan.sha256]
        assert store.exists(orphan.sha256)

    def test_candidates_limit_sweep(self, catalog, store):
        a = store.put(b"a")
        b = store.put(b"b")
        gc = collect_garbage(catalog, store, candidates=[a.sha256, "c" * 64])
        assert gc.scanned == 2
        assert gc.removed == [a.sha256]
        assert store.exists(b.sha256)

    def test_blob_vanishing_mid_sweep_is_skipped(self, catalog, store, monkeypatch):
        kept = store.put(b"kept")
        missing = "d" * 64
        monkeypatch.setattr(store, "exists", lambda digest: True)
        gc = collect_garbage(catalog, store, candidates=[missing, kept.sha256])
        assert gc.removed == [kept.sha256]
        assert gc.bytes_freed == len(b"kept")
