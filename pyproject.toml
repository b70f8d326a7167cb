[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "remoteapp"
version = "0.1.0"
description = "An asyncio event base, a TCP server with per-connection application objects, and an HTTP/2 request-reading session"
requires-python = ">=3.10"
keywords = ["http2", "asyncio", "server", "event-loop", "h2"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Framework :: AsyncIO",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]
dependencies = [
    "h2",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[project.scripts]
remoteapp = "remoteapp.service:main"

[tool.hatch.build.targets.wheel]
packages = ["remoteapp"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
