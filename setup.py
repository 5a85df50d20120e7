"""Setup configuration for the Casekeeper Discord moderation bot."""

from setuptools import setup, find_packages

setup(
    name="casekeeper",
    version="0.1.0",
    description="A Discord moderation bot with warnings, a permanent case ledger and ban override codes",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=[
        "py-cord>=2.4",
        "aiosqlite>=0.19",
        "python-dotenv>=1.0",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "casekeeper=casekeeper.main:main",
        ],
    },
)
