[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tinyos"
version = "0.1.0"
description = "Bitmap allocator, ELF loader, FAT16 and device file systems, shell and snake game of a small teaching operating system"
requires-python = ">=3.10"
dependencies = []
keywords = ["fat16", "filesystem", "elf", "bitmap", "shell", "snake", "operating-system"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Operating System",
    "Topic :: System :: Filesystems",
    "Topic :: Games/Entertainment :: Arcade",
    "Topic :: Education",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
tinyos-echo = "tinyos.echo:main"
tinyos-shell = "tinyos.shell:main"
tinyos-snake = "tinyos.snake:main"

[tool.hatch.build.targets.wheel]
packages = ["tinyos"]

[tool.pytest.ini_options]
addopts = "-ra"
