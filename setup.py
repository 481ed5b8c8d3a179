"""Setup configuration for activity_report"""

from setuptools import setup, find_packages

setup(
    name="github-activity-report",
    version="0.1.0",
    description=(
        "CLI tool that reports a GitHub user's daily and monthly line changes "
        "and pull requests against monthly goals to a chat webhook."
    ),
    author="GitHub Activity Report Contributors",
    author_email="",
    python_requires=">=3.10",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    install_requires=[
        "requests>=2.28.0",
        "tzdata",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "black>=22.0",
            "flake8>=4.0",
            "mypy>=0.950",
        ],
    },
    entry_points={
        "console_scripts": [
            "github-activity-report=activity_report.main:main",
        ],
    },
)
