from setuptools import setup, find_packages

setup(
    name="nuget-config-editor",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "lxml",
        "pyyaml",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "nugetcfg=nuget_config.cli:main",
        ],
    },
    author="Uday Kanth",
    description="Parse NuGet.Config files and edit them without disturbing their formatting.",
)
