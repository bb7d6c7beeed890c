"""
Setup script for goasmify Python package
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README for long description
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text() if readme_file.exists() else ""

setup(
    name="goasmify",
    version="0.1.0",
    description="Translate clang x86-64 assembly into Go assembler",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Compilers",
        "Topic :: Software Development :: Assemblers",
        "License :: OSI Approved :: BSD License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
    python_requires=">=3.8",
    entry_points={
        "console_scripts": [
            "goasmify=goasmify.cli:main",
        ],
    },
    install_requires=[],
    extras_require={
        "encode": [
            "keystone-engine>=0.9.2",  # Encoding of untranslated instructions
        ],
        "test": [
            "pytest>=7.0",
        ],
    },
)
