# setup.py
from setuptools import setup, find_namespace_packages

setup(
    name="swarm-brain",
    version="0.1",
    packages=find_namespace_packages(include=["src", "src.*"]),
    py_modules=["main"],
    install_requires=[
        # Standard library only
    ],
    entry_points={
        "console_scripts": [
            "swarm-brain=main:main",
        ],
    },
    extras_require={
        "test": ["pytest"],
    },
    python_requires=">=3.10",
)
