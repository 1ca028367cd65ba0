#!/usr/bin/env python

from setuptools import setup, find_packages

setup(
    name="upnp-relay",
    version="1.0.0",
    description="Caching relay for UPnP (SSDP) discovery announcements",
    packages=find_packages("src"),
    package_data={"": ["py.typed"]},
    python_requires=">=3.10",
    install_requires=("psutil", "rich"),
    extras_require={"test": ["pytest"]},
    entry_points={
        "console_scripts": ["upnp-relay=upnprelay.cli:main"],
    },
    package_dir={"": "src"},
)
