#!/usr/bin/env python
import sys

from setuptools import setup, find_namespace_packages


def check_python_version():
    """Check if Python version is compatible"""
    major, minor = sys.version_info[:2]
    if major < 3 or (major == 3 and minor < 10):
        sys.exit(f"Error: Python 3.10+ is required, but you're using {major}.{minor}")


check_python_version()

setup(
    name="price-tracker",
    version="1.0.0",
    description="Track product prices on e-commerce pages and serve their history over an API",
    python_requires=">=3.10",
    packages=find_namespace_packages(include=["price_tracker", "price_tracker.*"]),
    py_modules=["add_product"],
    install_requires=[
        "requests>=2.31",
        "beautifulsoup4>=4.12",
        "lxml>=4.9",
        "SQLAlchemy>=2.0",
        "APScheduler>=3.10,<4",
        "python-dotenv>=1.0",
        "pydantic>=2.0",
        "fastapi>=0.100",
        "uvicorn>=0.23",
        "streamlit>=1.30",
        "pandas>=2.0",
        "plotly>=5.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "httpx>=0.24",
        ],
    },
    entry_points={
        "console_scripts": [
            "price-tracker-api=price_tracker.api:run",
            "price-tracker-check=price_tracker.tasks.check_prices:main",
            "price-tracker-scheduler=price_tracker.tasks.scheduler:main",
            "price-tracker-add=add_product:main",
        ],
    },
)
