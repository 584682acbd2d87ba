"""
Packaging for the VNDC staking engine, its HTTP service and scenario tools.

    pip install .           # runtime
    pip install ".[dev]"    # plus test and lint tooling
"""

from pathlib import Path

from setuptools import find_packages, setup

readme = Path(__file__).resolve().parent / "README.md"

setup(
    name="vndc-staking",
    version="1.0.0",
    description="Tiered VNDC staking with early-exit penalties and APY boost policies",
    long_description=readme.read_text(encoding="utf-8") if readme.exists() else "",
    long_description_content_type="text/markdown",
    license="MIT",
    author="VNDC Contributors",
    python_requires=">=3.10",
    packages=find_packages(include=["vndc_core", "vndc_core.*"]),
    py_modules=["run_staking"],
    install_requires=[
        "ecdsa>=0.18.0,<0.20",
        "aiohttp>=3.9.0,<4",
        "tomli>=2.0.0,<3;python_version<'3.11'",
        "pycryptodome>=3.21.0,<4",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
            "pytest-cov>=4.0",
            "mypy>=1.5",
            "ruff>=0.1.0",
        ],
    },
    entry_points={"console_scripts": ["vndc-staking=run_staking:main_sync"]},
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Topic :: Office/Business :: Financial",
    ],
)
