# stackhelpers

Helpers for working with OpenStack clouds. The package depends only on the
standard library. It talks to services through small client interfaces
(`typing.Protocol` classes). You implement these on top of whatever HTTP layer
you already use.

## Installation

```
pip install stackhelpers
```

To run the test suite:

```
pip install "stackhelpers[test]"
pytest
```

## Name lookups: `stackhelpers.lookup`

- `ids_from_name(client, kind, name)` returns the IDs of every resource of `kind` that has the given name.
- `id_from_name(client, kind, name)` returns exactly one ID. It raises an error when the count is not one:
  - `ResourceNotFoundError` when nothing matches.
  - `MultipleResourcesFoundError` when more than one resource matches. The error's `count` says how many.
- `kind` is a `ResourceKind`. The kinds are images, networks, ports, subnets, shares, share types, share snapshots and security groups.
- `client` is any `ResourceClient`. Its `list_resources(kind, name)` method returns `Resource(id, name)` items.
- Filtering by name:
  - Share types are listed without a name filter and matched on their exact name.
  - Security groups are listed with a filter and then matched on their exact name as well.

## Object storage: `stackhelpers.swift`

The client passed to these functions is an `ObjectStore`
(`stackhelpers.swift.types`). It creates containers and lists containers
and objects. It gets, downloads, creates and deletes objects. A failed
request raises `ObjectStoreError`. The error's `status_code` is set when known,
and its `not_found` property is true for a 404. Object headers and user
metadata are returned as `ObjectHeaders`.

### Upload: `swift.upload`

`upload(client, container_name, object_name, opts)` uploads one object. It
takes an `UploadOptions`. The source can be:

- a local file (`path`),
- a stream (`content`),
- neither, which gives an empty object.

Giving both `path` and `content` raises `ValueError`.

What happens during an upload:

- A container name such as `container/folder` stores the object under that pseudo-folder.
- The container is created first. Errors from that step are ignored.
- An `Mtime` metadata value is set from the file's modification time, or from the current time.
- A directory path, or `dir_marker=True`, creates an `application/directory` marker.
- `changed` skips the upload when the existing object's `Mtime` and size match. The result status is `skip-changed`.
- `skip_identical` skips the upload when the MD5 digests of the object's segments match the local file. The result status is `skip-identical`.
- With `segment_size`, a larger local file is split into segments in `segment_container`, which defaults to `<container>_segments`. The segments are joined by one of two manifests:
  - a dynamic large object manifest, by default;
  - a static large object manifest, with `use_slo`.
- With `use_slo` and `segment_size` but no `path`, a stream is uploaded in segments. A stream shorter than one segment is stored as a plain object.
- `checksum` compares the local MD5 digest with the ETag returned by the store. A mismatch raises `ObjectStoreError`.
- Segments of a replaced large object are deleted unless `leave_segments` is set. Segments that the new manifest reuses are kept.

The function returns an `UploadResult`.

### Download: `swift.download`

`download(client, container_name, object_names, opts)` takes a
`DownloadOptions`. What it downloads depends on the arguments:

| Arguments | What is downloaded |
| --- | --- |
| object names given | those objects |
| no object names | every object in the container |
| empty container name and `yes_all` | every container |

A container name holding `/` raises `ValueError`.

Options:

- `prefix`, `delimiter` and `remove_prefix` control listing and local paths.
- `out_directory` writes objects under that directory.
- `out_file` writes a single object to that file.
- `out_file="-"` writes no file. The open body is returned as the result's `content` instead.
- `no_download` creates no files.
- `skip_identical` sends the local file's MD5 digest as `If-None-Match`. For large objects, it compares the local file against their manifest.
- Objects with a directory content type become local directories.
- A written file gets its modification time from the object's `Mtime` metadata when that value is a whole number of seconds. `ignore_mtime` turns this off.

Each object gives a `DownloadResult`.

### Manifests and segments

- `swift.manifest`
  - `extract_multipart_manifest(body)` parses a static large object manifest into `Manifest` entries. A body that is not a JSON array raises `ValueError`.
  - `get_manifest(client, GetManifestOptions(...))` returns the segments of a dynamic or static large object. For any other object it returns a single entry holding the object's size and ETag.
  - `is_identical(manifest, path)` tells whether a local file matches the segments exactly.
- `swift.segments`
  - `upload_segment` uploads one segment of a local file.
  - `upload_streaming_segment` uploads one segment read from a stream.
  - `upload_slo_manifest` stores the static manifest that lists the segments.
  - Segment parameters are given as `SegmentOptions`. Each call returns a `SegmentResult`.
- `swift.utils`
  - `container_partition("c/a/b/")` returns `("c", "a/b")`.
  - `file_md5_sum(filename)` returns the hex MD5 digest of a file.
  - `get_content_type(ct)` drops any `;` parameters from a content type.

## Utilities

- `stackhelpers.hashcode.hash_string(s)` returns the CRC-32 (IEEE) checksum of the UTF-8 bytes of `s`. The value is never negative.
- `stackhelpers.hashcode.hash_strings(strings)` hashes the strings joined with trailing `-` separators. It returns the hash as a decimal string.
- `stackhelpers.mutexkv.MutexKV` is a store of per-key locks. It has `lock(key)` and `unlock(key)`, and `locked(key)` for use as a context manager. Locks on different keys do not block each other.
- `stackhelpers.useragent.terraform_user_agent(version, sdk_version)` builds a Terraform User-Agent string. It appends the value of the `TF_APPEND_USER_AGENT` environment variable when that variable is set.

## What the package does not do

- It contains no HTTP client and no authentication. Every service call goes through a client object that you provide.
- It has no command-line program.
- It does not delete a project's servers, volumes, snapshots or network resources.