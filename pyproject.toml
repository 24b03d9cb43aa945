[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "chatstatus"
version = "0.1.0"
description = "Status service for a chat cluster: hands out the least loaded chat server and issues login tokens kept in Redis."
requires-python = ">=3.10"
keywords = ["chat", "status", "load-balancing", "redis", "grpc", "tokens"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Chat",
]
dependencies = [
    "redis",
    "grpcio",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
chatstatus = "chatstatus.server:main"

[tool.hatch.build.targets.wheel]
packages = ["chatstatus"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
