"""Setup configuration for stepwise."""

from setuptools import setup, find_packages

setup(
    name="stepwise",
    version="0.1.0",
    description="Scenario runner with an interactive stepper for inspecting logged state",
    packages=find_packages(exclude=["tests", "tests.*", "scenarios"]),
    python_requires=">=3.11",
    install_requires=[
        "pyyaml>=6.0",
        "click>=8.1.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "stepwise=stepwise.cli:main",
        ],
    },
)
