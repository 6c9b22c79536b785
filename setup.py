from setuptools import setup, find_packages

setup(
    name="safe2disk",
    version="0.1.0",
    description="Crash-safe incremental audio recording with startup recovery",
    author="",
    python_requires=">=3.8",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pyaudio>=0.2.11",
        "numpy>=1.21.0",
        "av>=10.0.0",
        "rich>=12.5.0",
        "pyyaml>=6.0.0",
        "pypubsub>=4.0.3",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "safe2disk=safe2disk.main:main",
        ],
    },
)
