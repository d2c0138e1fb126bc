[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "stackhelpers"
version = "0.1.0"
description = "Helpers for OpenStack clouds: name-to-ID lookups, Swift object upload and download, manifests, and small utilities."
requires-python = ">=3.10"
dependencies = []
keywords = ["openstack", "swift", "object-storage", "cloud", "large-objects"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["stackhelpers"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
