from stackhelpers.swift.types import (
    DownloadResult,
    ObjectHeaders,
    ObjectStoreError,
    UploadResult,
)


def test_object_store_error_not_found():
    err = ObjectStoreError("missing", status_code=404)
    assert err.not_found
    assert str(err) == "missing"


def test_object_store_error_other_status():
    err = ObjectStoreError("server broke", status_code=500)
    assert not err.not_found
    assert err.status_code == 500


def test_object_store_error_without_status():
    err = ObjectStoreError("no response")
    assert not err.not_found
    assert err.headers is None


def test_object_store_error_carries_headers():
    headers = ObjectHeaders(etag="abc", content_length=3)
    err = ObjectStoreError("not modified", status_code=304, headers=headers)
    assert err.headers.etag == "abc"
    assert err.headers.content_length == 3


def test_object_headers_metadata_not_shared():
    first = ObjectHeaders()
    second = ObjectHeaders()
    first.metadata["Mtime"] = "1"
    assert second.metadata == {}


def test_download_result_defaults():
    result = DownloadResult(action="download_object", container="c", object="o")
    assert result.success is False
    assert result.content is None
    assert result.pseudo_dir is False
    assert result.path == ""


def test_upload_result_defaults():
    result = UploadResult(action="create_dir_marker", container="c", object="o")
    assert result.success is False
    assert result.large_object is False
    assert result.status == ""