[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ilyvault"
version = "0.1.0"
description = "Terminal account registration with e-mail verification and an Argon2id-protected master password, stored in SQLite"
requires-python = ">=3.10"
keywords = ["password", "argon2", "sqlite", "terminal", "verification", "smtp"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Natural Language :: Russian",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Security",
]
dependencies = [
    "cryptography",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
ilyvault = "ilyvault.app:main"

[tool.hatch.build.targets.wheel]
packages = ["ilyvault"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
