#!/usr/bin/env python3
"""
Setup script for lsh, a minimal Slack RTM client
"""

from setuptools import setup, find_packages

setup(
    name="lsh",
    version="0.1.0",
    description="Minimal command-line client for the Slack real-time messaging API",
    packages=find_packages(include=["lsh", "lsh.*", "shared", "shared.*"]),
    install_requires=[
        "websockets==15.0",
        "httpx==0.28.1",
        "click==8.1.7",
        "typer==0.12.3",
        "rich==13.9.2",
        "aioconsole==0.8.1",
    ],
    extras_require={
        "test": [
            "pytest==8.4.2",
            "pytest-asyncio==1.2.0",
        ],
    },
    python_requires=">=3.9",
    entry_points={
        'console_scripts': [
            'lsh=lsh.lsh_cli:main',
        ],
    },
)
