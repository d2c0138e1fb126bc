"""Object storage upload, download, segment and manifest helpers."""