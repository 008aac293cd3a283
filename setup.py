from setuptools import setup, find_packages

setup(
    name="edrgen",
    version="0.1.0",
    description="EDR event generator - executes scripted process, file and network actions and writes an audit log",
    author="edrgen Team",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=[
        "typer>=0.16.0",
        "rich>=13.7.1",
        "python-dotenv>=1.0.1",
        "psutil>=5.9.8",
    ],
    extras_require={
        "test": [
            "pytest>=8.3.2",
        ],
    },
    entry_points={
        "console_scripts": [
            "edrgen=edrgen.apps.cli.app:app",  # команда `edrgen`
        ],
    },
)
