[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "livegears"
version = "0.2.2"
description = "Record live streams (HTTP-FLV and HLS) to disk with time- or size-based segmentation."
requires-python = ">=3.10"
dependencies = [
    "requests",
]
keywords = [
    "live-stream",
    "recorder",
    "flv",
    "hls",
    "m3u8",
    "bilibili",
    "huya",
    "douyu",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Video :: Capture",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[tool.hatch.build.targets.wheel]
packages = ["livegears"]

[tool.hatch.build.targets.sdist]
include = [
    "livegears",
    "tests",
]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
