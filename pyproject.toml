[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "lightlda"
version = "0.1.0"
description = "LightLDA topic modelling: corpus conversion, data blocks, alias-table proposals, Metropolis-Hastings sampling and likelihood evaluation"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "lda",
    "topic-model",
    "latent-dirichlet-allocation",
    "metropolis-hastings",
    "alias-method",
    "nlp",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Information Analysis",
    "Topic :: Text Processing :: Linguistic",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
lightlda-dump-binary = "lightlda.dump_binary:main"

[tool.hatch.build.targets.wheel]
packages = ["lightlda"]

[tool.hatch.build.targets.sdist]
include = ["lightlda", "tests", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
