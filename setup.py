from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="vascular-hemo",
    version="0.1.0",
    description="Coupled blood flow, tissue filtration and hematocrit transport on 1D vessel networks",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["vascular_hemo", "vascular_hemo.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Medical Science Apps.",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
    python_requires=">=3.8",
    install_requires=[
        "numpy>=1.20.0",
        "scipy>=1.6.0",
        "networkx>=2.5",
        "matplotlib>=3.3.0",
        "tqdm>=4.60",
        "pyvista>=0.32.0",
    ],
    extras_require={
        "dev": [
            "pytest>=6.0",
            "pytest-cov>=2.10",
        ],
    },
)
