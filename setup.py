"""
DocTree setup.py — Package configuration and CLI entry point.
"""

from setuptools import find_packages, setup

setup(
    name="doctree",
    version="1.0.0",
    description="DocTree — owner-scoped document tree engine",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.11",
    entry_points={
        "console_scripts": [
            "doctree=doctree.cli:main",
        ],
    },
    install_requires=[
        "sqlalchemy>=2.0",
        "pydantic>=2.5",
        "networkx>=3.2",
        "pyyaml>=6.0",
    ],
    extras_require={
        "postgres": ["psycopg2-binary>=2.9"],
        "test": ["pytest>=8.0"],
    },
)
