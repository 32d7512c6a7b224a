import setuptools

with open("README.md", "r") as fh:
    long_description = fh.read()

setuptools.setup(
    author="Walnut",
    author_email="walnut356@gmail.com",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    description="Replay decoding, live streaming and stats for SSBM Slippi replays",
    extras_require={"test": ["pytest"]},
    install_requires=["py-ubjson", "tzlocal", "polars"],
    long_description=long_description,
    long_description_content_type="text/markdown",
    name="py-slippi-kit",
    packages=setuptools.find_packages(include=["slippikit", "slippikit.*"]),
    python_requires=">=3.10",
    url="https://github.com/Walnut356/py-slippi-kit",
    version="0.1.0",
)
