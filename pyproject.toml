[build-system]
requires = ["setuptools>=64"]
build-backend = "setuptools.build_meta"

[project]
name = "livelybot"
version = "0.1.0"
description = "Serial and CAN protocol toolkit for LivelyBot motor boards, power boards and status displays"
requires-python = ">=3.10"
dependencies = [
    "pyserial",
]
keywords = [
    "robotics",
    "motor control",
    "serial",
    "can bus",
    "socketcan",
    "crc",
    "protocol",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Interface Engine/Protocol Translator",
    "Topic :: Software Development :: Embedded Systems",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.setuptools.packages.find]
include = ["livelybot*"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
