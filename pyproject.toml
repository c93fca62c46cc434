[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "oidcflow"
version = "0.1.0"
description = "OpenID Connect helpers: endpoint discovery, a local redirect callback server and system browser launching"
requires-python = ">=3.10"
dependencies = [
    "jinja2",
]
keywords = ["oidc", "oauth2", "openid-connect", "discovery", "callback", "browser"]
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
    "Topic :: Internet :: WWW/HTTP",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["oidcflow"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
