"""Setup script for Performance Wizard."""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="performance-wizard",
    version="0.1.0",
    description="AI-assisted website performance analysis driven by a multi-step LLM conversation",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["performance_wizard", "performance_wizard.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Internet :: WWW/HTTP :: Site Management",
    ],
    python_requires=">=3.9",
    install_requires=[
        "requests>=2.25.0",
        "openai>=1.0.0",
        "anthropic>=0.18.0",
        "google-genai>=1.0.0",
    ],
    extras_require={
        "dev": ["pytest>=7.0.0", "pytest-cov>=4.0.0"],
    },
    entry_points={
        "console_scripts": [
            "performance-wizard=performance_wizard.cli:main",
        ],
    },
)
