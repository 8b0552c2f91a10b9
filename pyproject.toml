[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "g3reg"
version = "0.1.0"
description = "Geometric primitives, tri-grid terrain modelling and curved-voxel clustering for LiDAR point clouds"
requires-python = ">=3.10"
keywords = ["point cloud", "lidar", "registration", "ground segmentation", "clustering", "bounding box"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering",
]
dependencies = [
    "numpy",
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["g3reg"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
