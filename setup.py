from setuptools import setup, find_packages
from pathlib import Path

# Read the README file for the long description
this_directory = Path(__file__).parent
readme = this_directory / "README.md"
long_description = readme.read_text() if readme.exists() else ""

setup(
    name="hanuki",
    version="0.1.0",
    description="A file browser for project folders published on IPFS",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["hanuki", "hanuki.*"]),
    entry_points={
        "console_scripts": [
            "hanuki=hanuki.cli:app"
        ],
    },
    install_requires=[
        "typer>=0.9.0",
        "rich>=13.0.0",
        "jinja2>=3.0.0",
        "httpx>=0.24.0",
        "markdown>=3.4.0",
        "pygments>=2.15.0",
        "beautifulsoup4>=4.12.0",
        "fastapi>=0.100.0",
        "uvicorn>=0.23.0",
        "pydantic>=2.0.0",
        "tomlkit>=0.11.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "click>=8.2.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.0.0",
            "black>=23.0.0",
            "isort>=5.0.0",
            "flake8>=6.0.0",
            "mypy>=1.0.0",
        ]
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: System :: Filesystems",
        "Topic :: Internet :: WWW/HTTP :: Browsers",
    ],
    python_requires='>=3.9',
    include_package_data=True,
    package_data={
        "hanuki": [
            "assets/*",
            "assets/_hanuki/*",
            "templates/*",
        ],
    },
)
