from setuptools import find_packages, setup

setup(
    name="dircol",
    version="0.1.0",
    description="Direct collocation transcription of optimal control problems for CasADi",
    author="dircol Authors",
    packages=find_packages(include=["dircol", "dircol.*"]),
    install_requires=[
        "numpy>=1.18.0",
        "matplotlib>=3.1.0",
        "scipy>=1.4.0",
        "casadi>=3.5.0",  # CasADi is used for the optimization backend
    ],
    extras_require={
        "test": ["pytest"],
    },
    python_requires=">=3.10",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Mathematics",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
    ],
    keywords="optimal control, trajectory optimization, direct collocation, Hermite-Simpson, pseudospectral methods",
)
