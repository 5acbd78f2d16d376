[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "xvutils"
version = "0.1.0"
description = "Small Unix-style user programs, a tiny shell, and Sv39 page-table, ELF and virtio layout tooling"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "unix",
    "shell",
    "grep",
    "wc",
    "page-table",
    "sv39",
    "elf",
    "virtio",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Utilities",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
xv-sh = "xvutils.shell:main"
xv-init = "xvutils.shell:init_main"
xv-grep = "xvutils.grep:main"
xv-wc = "xvutils.wc:main"
xv-ls = "xvutils.ls:main"
xv-cat = "xvutils.coreutils:cat_main"
xv-echo = "xvutils.coreutils:echo_main"
xv-kill = "xvutils.coreutils:kill_main"
xv-ln = "xvutils.coreutils:ln_main"
xv-mkdir = "xvutils.coreutils:mkdir_main"
xv-rm = "xvutils.coreutils:rm_main"
xv-grind = "xvutils.grind:main"
xv-forktest = "xvutils.procs:forktest_main"
xv-stressfs = "xvutils.procs:stressfs_main"
xv-zombie = "xvutils.procs:zombie_main"

[tool.hatch.build.targets.wheel]
packages = ["xvutils"]

[tool.hatch.build.targets.sdist]
include = ["xvutils", "tests", "README.md", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
