from setuptools import setup

setup(
    name="permutate",
    packages=["permutate", "permutate.base", "permutate.codegen", "permutate.runtime"],
    install_requires=[
        "numpy",
        "click",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "permutate=permutate.cli:cli_entrypoint",
        ],
    },
    python_requires=">=3.8",
    version="0.1.0",
    zip_safe=False,
)
