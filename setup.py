"""
Setup script for the jaxstk package.
"""

from setuptools import setup, find_packages

# Read the README file for the long description
def read_readme():
    with open("README.md", "r", encoding="utf-8") as fh:
        return fh.read()

# Read requirements from requirements.txt
def read_requirements():
    with open("requirements.txt", "r", encoding="utf-8") as fh:
        return [line.strip() for line in fh if line.strip() and not line.startswith("#")]

setup(
    name="jaxstk",
    version="0.1.0",
    author="jaxstk Team",
    author_email="",
    description="B-spline image interpolation, transformations and integration in JAX",
    long_description=read_readme(),
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "examples"]),
    classifiers=[],
    python_requires=">=3.9",
    install_requires=read_requirements(),
    extras_require={
        "dev": [
            "pytest>=6.0",
            "pytest-cov",
            "black",
            "flake8",
            "isort",
        ],
        "examples": [
            "matplotlib>=3.0",
        ],
    },
    keywords="jax, b-splines, image interpolation, registration, shape modelling",
)
