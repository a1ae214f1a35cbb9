[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "camstream"
version = "0.1.0"
description = "Still image writers, frame encoders and stream outputs for camera capture pipelines"
requires-python = ">=3.10"
dependencies = [
    "pillow",
]
keywords = ["camera", "bmp", "jpeg", "exif", "yuv", "mjpeg", "video", "circular-buffer"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Graphics :: Capture :: Digital Camera",
    "Topic :: Multimedia :: Graphics :: Graphics Conversion",
    "Topic :: Multimedia :: Video",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["camstream"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
