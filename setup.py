"""Setup script for botrunner."""

from setuptools import setup, find_packages
from pathlib import Path

# Read README
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

setup(
    name="botrunner",
    version="0.1.0",
    description="Event dispatch runtime for bot platform clients: middleware pipeline and long polling",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="Your Name",
    author_email="your.email@example.com",
    url="https://github.com/yourusername/botrunner",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    package_data={"botrunner.config": ["defaults.toml"]},
    python_requires=">=3.11",
    install_requires=[
        "fastapi>=0.104.0",
        "uvicorn[standard]>=0.24.0",
        "pydantic>=2.6.0",
        "platformdirs>=4.0.0",
        "toml>=0.10.2",
        "httpx>=0.25.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.1.0",
            "black>=23.11.0",
            "ruff>=0.1.6",
            "mypy>=1.7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "botrunner=botrunner.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Framework :: AsyncIO",
    ],
    keywords="bot telegram middleware long-polling webhook",
    project_urls={
        "Bug Reports": "https://github.com/yourusername/botrunner/issues",
        "Source": "https://github.com/yourusername/botrunner",
    },
)
