[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "aquarius"
version = "0.1.0"
description = "Asyncio TCP server and client with packet framing and protocol-routed handler contexts"
requires-python = ">=3.10"
dependencies = []
keywords = ["tcp", "asyncio", "networking", "framing", "server", "client", "tls"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Framework :: AsyncIO",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
    "Topic :: Software Development :: Libraries",
]

[project.optional-dependencies]
test = ["pytest", "pytest-asyncio"]

[project.scripts]
aquarius-echo = "aquarius.echo:main"

[tool.hatch.build.targets.wheel]
packages = ["aquarius"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
