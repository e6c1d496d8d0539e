[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "otkernel"
version = "0.1.0"
description = "A small block filesystem image format, in-memory directory tree, path handling and a scancode keyboard decoder"
requires-python = ">=3.10"
dependencies = []
keywords = ["filesystem", "fat", "disk-image", "path", "directory-tree", "keyboard", "scancode"]
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
    "Topic :: System :: Filesystems",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
mkfs-otfs = "otkernel.mkfs:main"

[tool.hatch.build.targets.wheel]
packages = ["otkernel"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
