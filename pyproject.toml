[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "minhareceita"
version = "0.1.0"
description = "Toolbox to download, check, sample and transform the Brazilian Federal Revenue CNPJ open data, and serve it as JSON."
requires-python = ">=3.10"
keywords = ["cnpj", "receita federal", "open data", "brazil", "etl", "json api"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Environment :: Web Environment",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Natural Language :: Portuguese (Brazilian)",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database",
    "Topic :: Internet :: WWW/HTTP :: WSGI :: Application",
    "Topic :: Utilities",
]
dependencies = [
    "requests>=2.28",
    "tqdm>=4.64",
    "werkzeug>=2.2",
]

[project.optional-dependencies]
test = [
    "pytest>=7",
    "responses>=0.22",
]

[project.scripts]
minha-receita = "minhareceita.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["minhareceita"]

[tool.hatch.build.targets.sdist]
include = ["minhareceita", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
ignore_missing_imports = true
