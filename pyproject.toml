[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rtmpkit"
version = "0.1.0"
description = "RTMP protocol building blocks: AMF0 scalar codec, chunk stream reader and writer, errors, logging, buffer pooling and server flag parsing"
requires-python = ">=3.10"
dependencies = []
keywords = ["rtmp", "amf0", "streaming", "chunk", "live-video"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Video",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["rtmpkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
