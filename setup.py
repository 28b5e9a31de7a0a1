from setuptools import setup, find_packages

setup(
    name="party_starter",
    version="0.1.0",
    description="Scaffold a starter web app, run its dev server and open it once it is ready",
    author="Antigravity",
    packages=find_packages(include=["party_starter", "party_starter.*"]),
    install_requires=[
        "pydantic>=2.0",
        "httpx>=0.28.1",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "create-party-starter=party_starter.runtime.cli:main",
        ],
    },
    python_requires=">=3.9",
)
