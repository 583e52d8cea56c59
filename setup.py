from setuptools import setup, find_packages

setup(
    name="repolyzer",
    version="1.0.0",
    description="Interactive terminal analyzer for GitHub repositories",
    packages=find_packages(exclude=("tests", "tests.*")),
    python_requires=">=3.10",
    install_requires=[
        "requests>=2.31.0",
        "rich>=13.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "repolyzer=repolyzer.cli:main",
        ],
    },
)
