[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "microev"
version = "2.4.1"
description = "A small event loop with I/O, timer, cron, signal and event watchers"
requires-python = ">=3.10"
dependencies = []
keywords = ["event loop", "selectors", "timer", "cron", "signal", "eventfd", "watcher"]
classifiers = [
    "Development Status :: 5 - Production/Stable",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
microev-bench = "microev.bench:main"
microev-ctrl = "microev.demos:ctrl_main"
microev-forky = "microev.demos:forky_main"
microev-joystick = "microev.demos:joystick_main"
microev-redirect = "microev.demos:redirect_main"

[tool.hatch.build.targets.wheel]
packages = ["microev"]

[tool.hatch.build.targets.sdist]
include = ["microev", "tests", "README.md", "pyproject.toml"]

[tool.pytest.ini_options]
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
