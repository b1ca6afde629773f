[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mimoaudio"
version = "0.1.0"
description = "Block-based multi-input multi-output audio processing: channel combining, crossfades and partitioned convolution."
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = ["audio", "dsp", "convolution", "crossfade", "mimo", "realtime"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Multimedia :: Sound/Audio",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["mimoaudio"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
