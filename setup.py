from setuptools import setup, find_packages
from pathlib import Path

# Get the directory containing setup.py
HERE = Path(__file__).parent

# Read requirements from requirements.txt
def read_requirements():
    requirements_path = HERE / "requirements.txt"
    with open(requirements_path) as f:
        return [line.strip() for line in f if line.strip() and not line.startswith("#")]

readme_path = HERE / "README.md"
long_description = readme_path.read_text(encoding="utf-8") if readme_path.exists() else ""

setup(
    name="bam2fastq_pkg",
    version="1.1.0",
    author="Dominika Bohuslavová",
    author_email="dominikadraesslerova@gmail.com",
    description="Extract paired and unpaired reads from BAM files as FASTQ",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["bam2fastq_pkg", "bam2fastq_pkg.*"]),
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: EUPL-1.2 license",
        "Operating System :: OS Independent",
        "Topic :: Scientific/Engineering :: Bio-Informatics",
    ],
    python_requires=">=3.10",
    install_requires=read_requirements(),
    extras_require={
        "test": [
            "pytest>=7.0",
            "biopython>=1.81",
        ],
    },
    entry_points={
        "console_scripts": [
            "bam2fastq=bam2fastq_pkg.__main__:main",
        ],
    },
)
