import pathlib

import setuptools

here = pathlib.Path(__file__).parent.resolve()

long_description = (here / "README.md").read_text(encoding="utf-8")

setuptools.setup(
    name="ethereum-archive",
    version="0.1.0",
    description=(
        "Conversion between RLP block exports and SSZ encoded archive files"
    ),
    long_description=long_description,
    long_description_content_type="text/markdown",
    license="CC0-1.0",
    classifiers=[
        "License :: CC0 1.0 Universal (CC0 1.0) Public Domain Dedication",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: Implementation :: CPython",
        "Programming Language :: Python :: Implementation :: PyPy",
    ],
    package_dir={"": "src"},
    packages=setuptools.find_packages(where="src"),
    package_data={
        "ethereum_archive": ["py.typed"],
        "ethereum_archive_tools": ["py.typed"],
    },
    python_requires=">=3.10",
    install_requires=[
        "ethereum-rlp>=0.1.1,<0.2",
        "ethereum-types>=0.2.1,<0.3",
        "typing_extensions>=4.4",
    ],
    extras_require={
        "test": [
            "pytest>=8.2,<9",
        ],
    },
    entry_points={
        "console_scripts": [
            "ethereum-archive=ethereum_archive_tools.cli:main",
        ],
    },
)
