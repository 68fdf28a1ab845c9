"""Setup configuration for k6dash"""

from setuptools import setup, find_packages

setup(
    name="k6-dashboard-generator",
    version="0.1.0",
    description=(
        "CLI tool that aggregates k6 load-test results into a combined summary, "
        "per-category HTML reports and a test dashboard."
    ),
    author="k6 Dashboard Generator Contributors",
    author_email="",
    python_requires=">=3.10",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    install_requires=[
        "requests>=2.28.0",
        "Jinja2>=3.1",
        "MarkupSafe>=2.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
        "dev": [
            "pytest>=7.0",
            "black>=22.0",
            "flake8>=4.0",
            "mypy>=0.950",
        ],
    },
    entry_points={
        "console_scripts": [
            "k6-dashboard=k6dash.main:main",
        ],
    },
)
