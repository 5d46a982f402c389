[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "oomdcore"
version = "0.5.0"
description = "Rule engine core for a userspace out-of-memory killer: config IR, JSON parsing, plugins, rulesets and a drop-in aware engine"
requires-python = ">=3.10"
dependencies = []
keywords = ["oom", "cgroup", "memory", "pressure", "rules", "engine"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["oomdcore"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
