[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "machscan"
version = "0.1.0"
description = "Symbol listing and __text section dumps for Mach-O, fat and ar archive files"
requires-python = ">=3.10"
dependencies = []
keywords = ["mach-o", "nm", "otool", "symbols", "hexdump", "fat", "universal", "archive"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Disassemblers",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
machscan-nm = "machscan.nm:main"
machscan-otool = "machscan.otool:main"

[tool.hatch.build.targets.wheel]
packages = ["machscan"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
