from setuptools import find_packages, setup

setup(
    name="easycdm",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=[
        "pydantic>=2",
        "cryptography",
        "requests",
        "click",
        "construct",
        "protobuf>=4.25",
    ],
    extras_require={
        "test": ["pytest", "pycryptodome"],
    },
    entry_points={
        "console_scripts": [
            "easycdm=easycdm.cli:cli",
        ],
    },
)
