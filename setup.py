from setuptools import setup, find_packages
import os

repo_root = os.path.dirname(os.path.abspath(__file__))

with open(os.path.join(repo_root, "README.md"), "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open(os.path.join(repo_root, "requirements.txt"), "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

setup(
    name="site-archive",
    version="1.0.0",
    description="Crawl a website and store a self-contained, browsable static mirror",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Internet :: WWW/HTTP :: Site Management",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
    python_requires=">=3.9",
    install_requires=requirements,
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "site-archive=site_archive.cli:main",
        ],
    },
)
