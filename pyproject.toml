[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "fleetboard"
version = "0.1.0"
description = "Multi-cluster service DNS answering, tunnel agent options, subnet parsing and EndpointSlice accounting"
requires-python = ">=3.10"
keywords = [
    "kubernetes",
    "multi-cluster",
    "dns",
    "endpointslice",
    "service-discovery",
    "metrics",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: Name Service (DNS)",
    "Topic :: System :: Clustering",
    "Topic :: System :: Networking",
]
dependencies = [
    "dnspython>=2.3",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
]

[tool.hatch.build.targets.wheel]
packages = ["fleetboard"]

[tool.pytest.ini_options]
testpaths = ["tests"]
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
