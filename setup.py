#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""The setup script."""
import os
import re

from setuptools import find_packages, setup

HERE = os.path.dirname(os.path.abspath(__file__))


def get_version() -> str:
    filename: str = os.path.join(HERE, "notesync", "__init__.py")
    with open(filename) as fp:
        contents = fp.read()
    pattern = r"^__version__ = \"(.*?)\"$"
    return re.search(pattern, contents, re.MULTILINE).group(1)


# Package meta-data.
NAME = "notesync"
DESCRIPTION = "Postgres notes to Elasticsearch/OpenSearch/Meilisearch reindex"
AUTHOR = MAINTAINER = "NoteSync Developers"
PYTHON_REQUIRES = ">=3.9.0"
VERSION = get_version()
INSTALL_REQUIRES = []
KEYWORDS = [
    "elasticsearch",
    "meilisearch",
    "misskey",
    "opensearch",
    "postgres",
    "reindex",
]
LICENSE = "MIT"
CLASSIFIERS = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Natural Language :: English",
    "Programming Language :: Python :: 3.9",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Programming Language :: Python :: Implementation :: CPython",
    "License :: OSI Approved :: MIT License",
    "Operating System :: OS Independent",
]
SCRIPTS = ["bin/notesync"]
TESTS_REQUIRE = ["pytest"]

# if building the source dist then add the sources
PACKAGES = find_packages(include=["notesync"])

with open(os.path.join(HERE, "README.rst")) as fp:
    README = fp.read()

with open(os.path.join(HERE, "requirements", "base.txt")) as fp:
    INSTALL_REQUIRES = fp.read()

with open(os.path.join(HERE, "requirements", "test.txt")) as fp:
    EXTRAS_REQUIRE = {"test": fp.read()}

setup(
    name=NAME,
    author=AUTHOR,
    license=LICENSE,
    maintainer=MAINTAINER,
    classifiers=CLASSIFIERS,
    python_requires=PYTHON_REQUIRES,
    description=DESCRIPTION,
    long_description=README,
    long_description_content_type="text/x-rst",
    install_requires=INSTALL_REQUIRES,
    extras_require=EXTRAS_REQUIRE,
    include_package_data=True,
    keywords=KEYWORDS,
    packages=PACKAGES,
    scripts=SCRIPTS,
    test_suite="tests",
    tests_require=TESTS_REQUIRE,
    version=VERSION,
    zip_safe=False,
)
