#!/usr/bin/env python3
"""
Kaleidoscope Front End
Lexer, parser and JIT-backed driver for the Kaleidoscope toy language.
"""

from setuptools import setup, find_packages
import os
import re
import sys

# Ensure Python 3.8+
if sys.version_info < (3, 8):
    raise RuntimeError("Kaleidoscope requires Python 3.8 or later")

# Read version from __init__.py
here = os.path.abspath(os.path.dirname(__file__))
version_file = os.path.join(here, "kaleidoscope", "__init__.py")
with open(version_file, encoding="utf-8") as f:
    version = re.search(r'^__version__ = "([^"]+)"', f.read(), re.M).group(1)

# Read README
readme_file = os.path.join(here, "README.md")
with open(readme_file, "r", encoding="utf-8") as f:
    long_description = f.read()

setup(
    name="kaleidoscope",
    version=version,
    description="Front end and JIT driver for the Kaleidoscope toy language",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="xwest",
    author_email="dev@kaleidoscope.dev",
    license="MIT",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        # The interpreter backend needs nothing beyond the standard library
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
        ],
        "llvm": [
            "llvmlite>=0.44.0,<0.48",
        ],
        "all": [
            "pytest>=7.4.0", "pytest-cov>=4.1.0",
            "llvmlite>=0.44.0,<0.48",
        ],
    },
    entry_points={
        "console_scripts": [
            "kaleidoscope=kaleidoscope.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Intended Audience :: Education",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Topic :: Software Development :: Compilers",
        "Topic :: Software Development :: Interpreters",
    ],
    keywords=["programming-language", "compiler", "llvm", "jit", "kaleidoscope", "parser"],
    zip_safe=False,
)
