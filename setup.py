"""Setup script for the eventcal scheduling engine."""

import os
from pathlib import Path

from setuptools import find_packages, setup
from setuptools.command.develop import develop
from setuptools.command.install import install


def post_install_setup():
    """Create the default configuration and data directories."""
    try:
        config_dir = Path.home() / ".config" / "eventcal"
        data_dir = Path.home() / ".local" / "share" / "eventcal"

        for directory in [config_dir, data_dir]:
            directory.mkdir(parents=True, exist_ok=True)
            if hasattr(os, "chmod"):
                os.chmod(directory, 0o755)

        if not (config_dir / "config.yaml").exists():
            print(f"eventcal: configuration directory {config_dir}")
            print(f"eventcal: events are stored in {data_dir / 'events.json'}")
            print("Run 'eventcal --help' to see all available commands")

    except OSError as e:
        print(f"Warning: Post-install setup failed: {e}")
        print("You may need to create configuration directories manually.")


class PostInstallCommand(install):
    """Custom install command with post-install setup."""

    def run(self):
        install.run(self)
        post_install_setup()


class PostDevelopCommand(develop):
    """Custom develop command with post-install setup."""

    def run(self):
        develop.run(self)
        post_install_setup()


readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

# Read requirements, routing test tooling into the dev extra
requirements_file = Path(__file__).parent / "requirements.txt"
requirements = []
dev_requirements = []

if requirements_file.exists():
    content = requirements_file.read_text().strip()
    lines = content.split("\n")

    for line in lines:
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if "pytest" in line or "development" in line.lower() or "testing" in line.lower():
            dev_requirements.append(line)
        else:
            requirements.append(line)

setup(
    name="eventcal",
    version="0.1.0",
    description="Scheduling engine for a month-grid calendar: recurrence, conflicts and drag reschedules",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests*", "docs*"]),
    include_package_data=True,
    install_requires=requirements,
    extras_require={
        "dev": dev_requirements
        + [
            "black>=23.0.0",
            "isort>=5.12.0",
            "mypy>=1.0.0",
        ],
    },
    python_requires=">=3.11",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Office/Business :: Scheduling",
    ],
    keywords="calendar scheduling recurrence conflicts month-grid",
    entry_points={
        "console_scripts": [
            "eventcal=eventcal.__main__:main",
        ],
    },
    cmdclass={
        "install": PostInstallCommand,
        "develop": PostDevelopCommand,
    },
    zip_safe=False,
)
