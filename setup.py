#!/usr/bin/env python3
"""
Setup configuration for the Browser Bookmark Importer
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

setup(
    name="bookmark-importer",
    version="1.0.0",
    author="Troy Davis",
    author_email="",
    description="Parses browser bookmark exports and imports them into a bookmark store with deduplication, folder tags and collections",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["bookmark_importer", "bookmark_importer.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Internet :: WWW/HTTP",
        "Topic :: Utilities",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.9",
    install_requires=requirements,
    extras_require={
        "test": [
            "pytest>=7.0",
            "html5lib>=1.1",
            "lxml>=4.9",
        ],
    },
    entry_points={
        "console_scripts": [
            "bookmark-importer=bookmark_importer.cli:main",
        ],
    },
    include_package_data=True,
    zip_safe=False,
)
