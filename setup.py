import os
from setuptools import setup, find_packages

setup(
    name="watts-happening",
    version="0.1.0",
    packages=find_packages("src"),
    package_dir={"": "src"},
    install_requires=[
        "aiohttp>=3.9",
        "pydantic>=2.5",
        "pydantic-settings>=2.1",
        "prometheus-client>=0.19",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
            "pytest-mock>=3.12",
        ],
    },
    entry_points={
        "console_scripts": [
            "watts-happening=watts_happening.main:cli",
        ],
    },
    description="Incrementally sync Strava indoor rides and their sensor streams to local JSON files",
    long_description=open("README.md").read() if os.path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.9",
)
