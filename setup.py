from setuptools import setup, find_packages

setup(
    name="windtunnel",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "numpy",
        "numba",
        "matplotlib",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "windtunnel-preview=windtunnel.visualization:main",
        ],
    },
    author="arthifact",
    description="Headless particle core of a real-time 3D wind tunnel: curl-noise turbulence, wake vortices and sphere deflection",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.8",
)
