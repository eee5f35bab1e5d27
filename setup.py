from setuptools import find_packages, setup

setup(
    name="locshare",
    version="0.0.0",
    packages=find_packages(exclude=["tests", "tests.*", "examples", "examples.*"]),
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=[
        "pydantic>=2",
        "cryptography",
        "requests",
        "click",
        "PGPy>=0.6",
        # PGPy still imports the imghdr module removed in Python 3.13
        "standard-imghdr; python_version>='3.13'",
    ],
    extras_require={
        "test": [
            "pytest",
            "fastapi",
            "httpx",
        ],
    },
    entry_points={
        "console_scripts": [
            "locshare=locshare.cli:cli",
        ],
    },
)
