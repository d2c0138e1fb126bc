import hashlib
import io
import json
import os
import re

import pytest

from stackhelpers.swift.types import ObjectHeaders, ObjectStoreError
from stackhelpers.swift.upload import UploadOptions, upload
from stackhelpers.swift.utils import EMPTY_ETAG


class FakeStore:
    def __init__(self):
        self.containers = {}
        self.fail_containers = set()
        self.etag_override = None
        self.get_error = None
        self.created = []

    def create_container(self, container):
        if container in self.fail_containers:
            raise ObjectStoreError("boom", status_code=500)
        self.containers.setdefault(container, {})

    def list_containers(self, prefix, delimiter):
        return sorted(c for c in self.containers if c.startswith(prefix))

    def list_objects(self, container, prefix, delimiter):
        if container not in self.containers:
            raise ObjectStoreError("no container", status_code=404)
        return sorted(n for n in self.containers[container] if n.startswith(prefix))

    def _lookup(self, container, name):
        try:
            return self.containers[container][name]
        except KeyError:
            raise ObjectStoreError("not found", status_code=404) from None

    def get_object(self, container, name):
        if self.get_error is not None:
            raise self.get_error
        headers, _ = self._lookup(container, name)
        return headers

    def download_object(self, container, name, multipart_manifest, if_none_match):
        headers, data = self._lookup(container, name)
        return headers, io.BytesIO(data)

    def create_object(self, container, name, content, **kwargs):
        data = content if isinstance(content, bytes) else content.read()
        self.created.append((container, name))
        slo = False
        if kwargs.get("multipart_manifest") == "put":
            entries = json.loads(data)
            data = json.dumps(
                [
                    {"name": e["path"], "hash": e["etag"], "bytes": e["size_bytes"]}
                    for e in entries
                ]
            ).encode()
            slo = True
        etag = self.etag_override or hashlib.md5(data).hexdigest()
        headers = ObjectHeaders(
            content_length=len(data),
            content_type=kwargs.get("content_type", "") or "",
            etag=etag,
            object_manifest=kwargs.get("object_manifest", "") or "",
            static_large_object=slo,
            metadata=dict(kwargs.get("metadata") or {}),
        )
        self.containers.setdefault(container, {})[name] = (headers, data)
        return ObjectHeaders(etag=etag)

    def delete_object(self, container, name):
        self._lookup(container, name)
        del self.containers[container][name]

    def data(self, container, name):
        return self.containers[container][name][1]

    def headers(self, container, name):
        return self.containers[container][name][0]


@pytest.fixture
def store():
    return FakeStore()


def _write(path, data, mtime_ns):
    path.write_bytes(data)
    os.utime(path, ns=(mtime_ns, mtime_ns))
    return str(path)


def test_path_and_content_together_rejected(store, tmp_path):
    opts = UploadOptions(path=str(tmp_path), content=io.BytesIO(b"x"))
    with pytest.raises(ValueError, match="only one of Path and Content"):
        upload(store, "c", "obj", opts)


def test_upload_stream_content(store):
    result = upload(store, "c", "obj", UploadOptions(content=io.BytesIO(b"hello")))
    assert result.status == "uploaded"
    assert result.success is True
    assert result.action == "upload_action"
    assert result.large_object is False
    assert store.data("c", "obj") == b"hello"
    assert re.fullmatch(r"\d+\.\d{6}", store.headers("c", "obj").metadata["Mtime"])


def test_pseudo_folder_prefixes_object_name(store):
    result = upload(store, "c/dir/", "obj", UploadOptions(content=io.BytesIO(b"a")))
    assert result.container == "c"
    assert result.object == "dir/obj"
    assert store.data("c", "dir/obj") == b"a"


def test_leading_dot_slash_is_removed(store):
    result = upload(store, "c", "./obj", UploadOptions(content=io.BytesIO(b"a")))
    assert result.object == "obj"
    assert "obj" in store.containers["c"]


def test_empty_object_when_nothing_given(store):
    result = upload(store, "c", "empty")
    assert result.status == "uploaded"
    assert store.data("c", "empty") == b""


def test_dir_marker(store):
    result = upload(store, "c", "dir", UploadOptions(dir_marker=True))
    assert result.action == "create_dir_marker"
    assert result.success is True
    assert store.headers("c", "dir").content_type == "application/directory"


def test_directory_path_becomes_dir_marker(store, tmp_path):
    result = upload(store, "c", "d", UploadOptions(path=str(tmp_path)))
    assert result.action == "create_dir_marker"
    assert store.headers("c", "d").etag == EMPTY_ETAG


def test_unchanged_dir_marker_is_not_recreated(store, tmp_path):
    os.utime(tmp_path, ns=(1_500_000_000_250_000_000, 1_500_000_000_250_000_000))
    opts = UploadOptions(path=str(tmp_path), changed=True)
    upload(store, "c", "d", opts)
    count = len(store.created)
    result = upload(store, "c", "d", opts)
    assert result.success is True
    assert len(store.created) == count


def test_path_mtime_recorded(store, tmp_path):
    path = _write(tmp_path / "f", b"data", 1_500_000_000_250_000_000)
    upload(store, "c", "obj", UploadOptions(path=path))
    assert store.headers("c", "obj").metadata["Mtime"] == "1500000000.250000"
    assert store.data("c", "obj") == b"data"


def test_checksum_upload_from_path(store, tmp_path):
    path = _write(tmp_path / "f", b"payload", 1_500_000_000_000_000_000)
    result = upload(store, "c", "obj", UploadOptions(path=path, checksum=True))
    assert result.status == "uploaded"
    assert store.headers("c", "obj").etag == hashlib.md5(b"payload").hexdigest()


def test_checksum_mismatch_raises(store):
    store.etag_override = "0" * 32
    opts = UploadOptions(content=io.BytesIO(b"abc"), checksum=True)
    with pytest.raises(ObjectStoreError, match="md5 mismatch"):
        upload(store, "c", "obj", opts)


def test_skip_changed(store, tmp_path):
    path = _write(tmp_path / "f", b"same", 1_500_000_000_000_000_000)
    upload(store, "c", "obj", UploadOptions(path=path))
    result = upload(store, "c", "obj", UploadOptions(path=path, changed=True))
    assert result.status == "skip-changed"
    assert result.success is True


def test_skip_identical(store, tmp_path):
    path = _write(tmp_path / "f", b"identical", 1_500_000_000_000_000_000)
    upload(store, "c", "obj", UploadOptions(path=path))
    count = len(store.created)
    result = upload(store, "c", "obj", UploadOptions(path=path, skip_identical=True))
    assert result.status == "skip-identical"
    assert len(store.created) == count


def test_original_lookup_error_raises(store):
    store.get_error = ObjectStoreError("server error", status_code=500)
    with pytest.raises(ObjectStoreError, match="error retrieving original object"):
        upload(store, "c", "obj", UploadOptions(content=io.BytesIO(b"x")))


def test_segment_container_creation_failure(store):
    store.fail_containers.add("c_segments")
    opts = UploadOptions(content=io.BytesIO(b"x"), segment_size=4)
    with pytest.raises(ObjectStoreError, match="error creating segment container"):
        upload(store, "c", "obj", opts)


def test_dynamic_large_object(store, tmp_path):
    data = b"0123456789"
    path = _write(tmp_path / "f", data, 1_500_000_000_000_000_000)
    result = upload(store, "c", "obj", UploadOptions(path=path, segment_size=4))
    assert result.large_object is True
    names = store.list_objects("c_segments", "", "")
    assert len(names) == 3
    assert b"".join(store.data("c_segments", n) for n in names) == data
    manifest = store.headers("c", "obj").object_manifest
    assert manifest.startswith("c_segments/obj/")
    assert manifest.endswith("/10/4/")


def test_dynamic_large_object_replaces_old_segments(store, tmp_path):
    data = b"0123456789"
    path = _write(tmp_path / "f", data, 1_500_000_000_000_000_000)
    upload(store, "c", "obj", UploadOptions(path=path, segment_size=4))
    os.utime(path, ns=(1_600_000_000_000_000_000, 1_600_000_000_000_000_000))
    upload(store, "c", "obj", UploadOptions(path=path, segment_size=4))
    mtime = store.headers("c", "obj").metadata["Mtime"]
    names = store.list_objects("c_segments", "", "")
    assert len(names) == 3
    assert all(mtime in n for n in names)


def test_static_large_object(store, tmp_path):
    data = b"abcdefghij"
    path = _write(tmp_path / "f", data, 1_500_000_000_000_000_000)
    result = upload(store, "c", "obj", UploadOptions(path=path, segment_size=4, use_slo=True))
    assert result.large_object is True
    assert store.headers("c", "obj").static_large_object is True
    entries = json.loads(store.data("c", "obj"))
    assert len(entries) == 3
    assert all("/slo/" in e["name"] for e in entries)


def test_static_large_object_old_segments_removed(store, tmp_path):
    path = _write(tmp_path / "f", b"abcdefghij", 1_500_000_000_000_000_000)
    opts = UploadOptions(path=path, segment_size=4, use_slo=True)
    upload(store, "c", "obj", opts)
    os.utime(path, ns=(1_600_000_000_000_000_000, 1_600_000_000_000_000_000))
    upload(store, "c", "obj", opts)
    mtime = store.headers("c", "obj").metadata["Mtime"]
    names = store.list_objects("c_segments", "", "")
    assert len(names) == 3
    assert all(mtime in n for n in names)


def test_streaming_slo_small_content_stored_directly(store):
    opts = UploadOptions(content=io.BytesIO(b"abc"), segment_size=10, use_slo=True)
    result = upload(store, "c", "obj", opts)
    assert result.large_object is False
    assert store.data("c", "obj") == b"abc"
    assert store.list_objects("c_segments", "", "") == []


def test_streaming_slo_large_content(store):
    data = bytes(range(25))
    opts = UploadOptions(content=io.BytesIO(data), segment_size=10, use_slo=True)
    result = upload(store, "c", "obj", opts)
    assert result.status == "uploaded"
    names = store.list_objects("c_segments", "", "")
    assert len(names) == 3
    assert b"".join(store.data("c_segments", n) for n in names) == data
    entries = json.loads(store.data("c", "obj"))
    assert [e["bytes"] for e in entries] == [10, 10, 5]