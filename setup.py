from setuptools import setup, find_packages

setup(
    name="flsimlab",
    version="0.1.0",
    description="Synthetic federated learning simulation engine for interactive dashboards",
    author="FL Simulation Lab Team",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.9",
    install_requires=[
        "numpy>=1.24.0",
        "pandas>=2.0.0",
        "pyyaml>=6.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
)
