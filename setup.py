from setuptools import setup, find_packages

import re
import os

this_directory = os.path.abspath(os.path.dirname(__file__))
__version__ = re.findall(
    r"""__version__ = ["']+([0-9\.]*)["']+""",
    open(os.path.join(this_directory, "flutterpy/version.py")).read(),
)[0]

with open(os.path.join(this_directory, "README.md"), encoding="utf-8") as f:
    long_description = f.read()

setup(
    name="flutterpy",
    version=__version__,
    description="""FlutterPy finds the critical flutter velocity of a structure
    in a flow by sweeping, bracketing and bisecting the roots of its reduced
    aeroelastic system, computes the sensitivity of that velocity to the design
    parameters and integrates the nonlinear structural dynamics in time with
    the Newmark scheme.""",
    long_description=long_description,
    long_description_content_type="text/markdown",
    keywords="flutter aeroelastic stability sensitivity newmark",
    author="",
    author_email="",
    license="BSD 3-Clause License",
    packages=find_packages(
        where='./',
        include=['flutterpy*'],
        exclude=['tests']
        ),
    python_requires=">=3.8",
    install_requires=[
        "numpy",
        "configobj",
        "h5py",
        "scipy",
        "matplotlib",
        "colorama",
    ],
    extras_require={
        "test": [
            "pytest",
                 ],
    },
    classifiers=[
        "Operating System :: Linux, Mac OS",
        "Programming Language :: Python",
        ],

    entry_points={
        'console_scripts': ['flutterpy=flutterpy.flutterpy_main:flutterpy_run'],
        }
)
