
from setuptools import setup, find_packages

setup(
    name="term_structure_engine",
    version="0.1.0",
    description="Zero curve bootstrapping and volatility surface engine",
    packages=find_packages(exclude=("tests", "tests.*")),
    install_requires=[
        "numpy",
        "pandas",
        "scipy",
    ],
    extras_require={
        "test": ["pytest"],
    },
    python_requires=">=3.8",
)
