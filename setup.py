import setuptools
import os
import os.path


# Get the readme file
if os.path.isfile("README.md"):
    with open("README.md", "r") as fh:
        long_description = fh.read()
else:
    long_description = ""

setuptools.setup(
    name="edhub",
    version="0.0.0",
    description="Basis classification and field operator matrix elements for exact diagonalization of Hubbard-type models",
    long_description=long_description,
    long_description_content_type="text/markdown",
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
    package_dir={
        "edhub": "edhub",
        "edhub.modeling": "edhub/modeling",
        "edhub.models": "edhub/models",
        "edhub.operators": "edhub/operators",
        "edhub.tools": "edhub/tools",
    },
    packages=[
        "edhub",
        "edhub.modeling",
        "edhub.models",
        "edhub.operators",
        "edhub.tools",
    ],
    install_requires=[
        "numpy",
        "scipy",
        "numba",
        "sympy",
    ],
    extras_require={"test": ["pytest"]},
    python_requires=">=3.10",
)
