"""
Setup script for dynlib

Pure-Python package: the native loaders it wraps come with the OS, so there
is nothing to compile. Sources live under src/.
"""

from pathlib import Path
from setuptools import setup, find_packages


# Read version from src/dynlib/__init__.py
def get_version():
    version_file = Path("src/dynlib/__init__.py")
    if version_file.exists():
        for line in version_file.read_text().splitlines():
            if line.startswith("__version__"):
                return line.split("=")[1].strip().strip('"').strip("'")
    return "0.1.0"


# Read long description from README
def get_long_description():
    readme = Path("README.md")
    if readme.exists():
        return readme.read_text(encoding="utf-8")
    return ""


setup(
    name="dynlib",
    version=get_version(),
    description="Cross-platform dynamic library loading with candidate-name fallback",
    long_description=get_long_description(),
    long_description_content_type="text/markdown",
    license="MIT",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.8",
    install_requires=[],
    extras_require={
        "test": ["pytest>=7"],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: POSIX",
        "Operating System :: Microsoft :: Windows",
        "Operating System :: MacOS",
    ],
    zip_safe=True,
)
