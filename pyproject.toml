[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "psxmedia"
version = "0.1.0"
description = "Encoders and decoders for PlayStation media: MDEC bitstream images and XA ADPCM audio"
requires-python = ">=3.10"
dependencies = []
keywords = ["playstation", "psx", "mdec", "bitstream", "xa", "adpcm", "dct"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Multimedia :: Graphics :: Graphics Conversion",
    "Topic :: Multimedia :: Sound/Audio :: Conversion",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["psxmedia"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
