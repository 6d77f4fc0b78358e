"""Tests for the storage operation layer."""

import pytest

from fakes import TEST_ACCESS_KEY, TEST_REGION, TEST_SECRET_KEY
from storage_console.storage.results import DrainReport
from storage_console.storage.service import StorageService, normalize_prefix

CREDS = (TEST_ACCESS_KEY, TEST_SECRET_KEY, TEST_REGION)


class TestNormalizePrefix:
    @pytest.mark.parametrize(
        "prefix, expected",
        [
            ("", ""),
            (None, ""),
            ("a", "a/"),
            ("a/", "a/"),
            ("/a/b", "a/b/"),
            ("/", ""),
        ],
    )
    def test_normalize(self, prefix, expected):
        assert normalize_prefix(prefix) == expected


class TestListBuckets:
    """Tests for bucket listing with statistics."""

    async def test_folder_markers_excluded_from_stats(self, storage, s3_backend):
        s3_backend.add_bucket("photos", {"a.txt": b"0123456789", "folder/": b""})

        result = await storage.list_buckets(*CREDS)

        assert result.success
        [summary] = result.data
        assert summary.name == "photos"
        assert summary.object_count == 1
        assert summary.size == 10
        assert summary.region == TEST_REGION

    async def test_stats_aggregate_across_pages(self, storage, s3_backend):
        s3_backend.add_bucket("logs", {f"day-{i}.log": b"x" * i for i in range(1, 6)})

        result = await storage.list_buckets(*CREDS)

        [summary] = result.data
        assert summary.object_count == 5
        assert summary.size == 15
        # page size 2 -> 3 listing calls
        assert len(s3_backend.calls_named("list_objects_v2")) == 3

    async def test_slow_bucket_gets_zeroed_stats(self, client_cache, s3_backend):
        storage = StorageService(client_cache, stats_timeout=0.05, stats_delay=0)
        s3_backend.add_bucket("fast", {"a": b"abc"})
        s3_backend.add_bucket("slow", {"b": b"abcdef"})
        s3_backend.slow_buckets["slow"] = 0.3

        result = await storage.list_buckets(*CREDS)

        assert result.success
        stats = {s.name: (s.object_count, s.size) for s in result.data}
        assert stats == {"fast": (1, 3), "slow": (0, 0)}

    async def test_empty_account(self, storage):
        result = await storage.list_buckets(*CREDS)
        assert result.success
        assert result.data == []

    async def test_bad_credentials_fail_without_raising(self, storage):
        result = await storage.list_buckets(TEST_ACCESS_KEY, "wrong", TEST_REGION)

        assert not result.success
        assert result.code == "bad_signature"


class TestCreateBucket:
    async def test_create(self, storage, s3_backend):
        result = await storage.create_bucket(*CREDS, "new-bucket.1")

        assert result.success
        assert "new-bucket.1" in s3_backend.buckets

    @pytest.mark.parametrize("name", ["Upper", "under_score", "", "spa ce"])
    async def test_invalid_name_never_reaches_storage(self, storage, s3_backend, name):
        result = await storage.create_bucket(*CREDS, name)

        assert result.code == "invalid_bucket_name"
        assert s3_backend.calls == []

    async def test_existing_bucket(self, storage, s3_backend):
        s3_backend.add_bucket("taken")

        result = await storage.create_bucket(*CREDS, "taken")

        assert result.code == "bucket_exists"
        assert result.error == "Bucket name already exists"


class TestDeleteBucket:
    """Tests for plain and forced bucket deletion."""

    async def test_delete_empty_bucket(self, storage, s3_backend):
        s3_backend.add_bucket("empty")

        result = await storage.delete_bucket(*CREDS, "empty")

        assert result.success
        assert result.data == DrainReport(0, 0)
        assert "empty" not in s3_backend.buckets

    async def test_non_empty_bucket_without_force(self, storage, s3_backend):
        s3_backend.add_bucket("full", {"a": b"1"})

        result = await storage.delete_bucket(*CREDS, "full")

        assert result.code == "bucket_not_empty"
        assert s3_backend.keys("full") == ["a"]
        assert s3_backend.calls_named("delete_object") == []

    async def test_force_drains_all_pages_before_bucket_delete(self, storage, s3_backend):
        keys = {f"dir/file-{i}": b"x" for i in range(7)}
        s3_backend.add_bucket("full", keys)

        result = await storage.delete_bucket(*CREDS, "full", force=True)

        assert result.success
        assert result.data == DrainReport(deleted_objects=7, failed_objects=0)
        assert "full" not in s3_backend.buckets

        call_names = [name for name, _ in s3_backend.calls]
        last_object_delete = max(i for i, n in enumerate(call_names) if n == "delete_object")
        assert call_names.index("delete_bucket") > last_object_delete

        # Listing completes before deletion starts, then keys go in listing order
        last_listing = max(i for i, n in enumerate(call_names) if n == "list_objects_v2")
        first_object_delete = call_names.index("delete_object")
        assert last_listing < first_object_delete
        deleted = [p["Key"] for p in s3_backend.calls_named("delete_object")]
        assert deleted == sorted(keys)

    async def test_force_continues_past_failed_deletes(self, storage, s3_backend):
        s3_backend.add_bucket("full", {f"k{i}": b"x" for i in range(5)})
        s3_backend.undeletable_keys = {"k1", "k3"}

        result = await storage.delete_bucket(*CREDS, "full", force=True)

        # Every key gets an attempt and the bucket delete is still issued
        attempted = [p["Key"] for p in s3_backend.calls_named("delete_object")]
        assert attempted == ["k0", "k1", "k2", "k3", "k4"]
        assert s3_backend.calls_named("delete_bucket") == [{"Bucket": "full"}]
        assert s3_backend.keys("full") == ["k1", "k3"]
        assert result.code == "bucket_not_empty"

    async def test_missing_bucket(self, storage):
        result = await storage.delete_bucket(*CREDS, "ghost", force=True)
        assert result.code == "not_found"
        assert result.error == "Bucket not found"


class TestListObjects:
    """Tests for prefix listing with folder emulation."""

    @pytest.fixture
    def tree(self, s3_backend):
        s3_backend.add_bucket(
            "tree",
            {
                "root.txt": b"r",
                "a/": b"",
                "a/one.txt": b"11",
                "a/two.txt": b"222",
                "a/b/": b"",
                "a/b/deep.txt": b"d",
                "a/c/x.txt": b"x",
                "z/": b"",
            },
        )

    async def test_root_listing(self, storage, tree):
        result = await storage.list_objects(*CREDS, "tree")

        entries = {(e.name, e.is_folder) for e in result.data}
        assert entries == {("a", True), ("z", True), ("root.txt", False)}

    async def test_prefix_listing_returns_direct_children_only(self, storage, tree):
        result = await storage.list_objects(*CREDS, "tree", "a/")

        assert result.success
        for entry in result.data:
            assert "/" not in entry.name
            assert entry.key != "a/"
        folders = sorted(e.name for e in result.data if e.is_folder)
        files = sorted(e.name for e in result.data if not e.is_folder)
        assert folders == ["b", "c"]
        assert files == ["one.txt", "two.txt"]

    async def test_folders_listed_before_files(self, storage, tree):
        result = await storage.list_objects(*CREDS, "tree", "a")
        kinds = [e.is_folder for e in result.data]
        assert kinds == sorted(kinds, reverse=True)

    async def test_prefix_without_trailing_slash_or_with_leading_slash(self, storage, tree):
        plain = await storage.list_objects(*CREDS, "tree", "a")
        slashed = await storage.list_objects(*CREDS, "tree", "/a/")

        assert [e.key for e in plain.data] == [e.key for e in slashed.data]

    async def test_file_entry_fields(self, storage, tree):
        result = await storage.list_objects(*CREDS, "tree", "a")
        one = next(e for e in result.data if e.name == "one.txt")

        assert one.key == "a/one.txt"
        assert one.size == 2
        assert one.storage_class == "STANDARD"
        assert one.etag
        assert one.last_modified is not None

    async def test_folder_entry_fields(self, storage, tree):
        result = await storage.list_objects(*CREDS, "tree", "a")
        b = next(e for e in result.data if e.name == "b")

        assert b.key == "a/b/"
        assert b.size == 0
        assert b.storage_class == "FOLDER"

    async def test_listing_paginates_to_completion(self, storage, s3_backend):
        s3_backend.add_bucket("many", {f"f{i:02d}": b"x" for i in range(9)})

        result = await storage.list_objects(*CREDS, "many")

        assert len(result.data) == 9
        assert len(s3_backend.calls_named("list_objects_v2")) == 5

    async def test_missing_bucket(self, storage):
        result = await storage.list_objects(*CREDS, "ghost")
        assert result.code == "not_found"


class TestObjects:
    """Tests for single-object operations."""

    async def test_upload(self, storage, s3_backend):
        s3_backend.add_bucket("b")

        result = await storage.upload_object(*CREDS, "b", "docs/a.txt", b"hello", "text/plain")

        assert result.data == {"key": "docs/a.txt", "size": 5}
        assert s3_backend.buckets["b"]["objects"]["docs/a.txt"]["Body"] == b"hello"
        assert s3_backend.buckets["b"]["objects"]["docs/a.txt"]["ContentType"] == "text/plain"

    async def test_upload_defaults_content_type(self, storage, s3_backend):
        s3_backend.add_bucket("b")
        await storage.upload_object(*CREDS, "b", "blob", b"\x00")
        assert s3_backend.buckets["b"]["objects"]["blob"]["ContentType"] == "application/octet-stream"

    async def test_delete_object(self, storage, s3_backend):
        s3_backend.add_bucket("b", {"a": b"1", "b": b"2"})

        result = await storage.delete_object(*CREDS, "b", "a")

        assert result.success
        assert s3_backend.keys("b") == ["b"]

    async def test_download_url(self, storage, s3_backend):
        s3_backend.add_bucket("b", {"a.txt": b"1"})

        result = await storage.get_download_url(*CREDS, "b", "a.txt")

        assert result.data["expires_in"] == 3600
        assert "a.txt" in result.data["url"]
        [call] = s3_backend.calls_named("generate_presigned_url")
        assert call["ClientMethod"] == "get_object"
        assert call["ExpiresIn"] == 3600


class TestFolders:
    async def test_create_folder_then_list_parent(self, storage, s3_backend):
        s3_backend.add_bucket("b")

        created = await storage.create_folder(*CREDS, "b", "x/y")
        listed = await storage.list_objects(*CREDS, "b", "x")

        assert created.data == {"key": "x/y/"}
        assert s3_backend.buckets["b"]["objects"]["x/y/"]["Size"] == 0
        assert [(e.name, e.is_folder) for e in listed.data] == [("y", True)]

    @pytest.mark.parametrize("path", ["", "/", "//"])
    async def test_empty_folder_name_rejected(self, storage, s3_backend, path):
        s3_backend.add_bucket("b")

        result = await storage.create_folder(*CREDS, "b", path)

        assert result.code == "invalid_folder_name"
        assert s3_backend.calls_named("put_object") == []
