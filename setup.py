"""Setup file for Aislewise package."""
from setuptools import setup, find_packages

setup(
    name="aislewise",
    version="0.1.0",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    install_requires=[
        "SQLAlchemy>=2.0",
        "pydantic>=2.5",
        "pydantic-settings>=2.1",
        "loguru>=0.7",
        "inflect>=7.0",
        "openai>=1.0",
        "tenacity>=8.2",
    ],
    extras_require={
        "test": [
            "pytest>=8.1.1",
            "pytest-asyncio>=0.23",
            "httpx>=0.25",
        ],
    },
    python_requires=">=3.11",
)
