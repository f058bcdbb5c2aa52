# -*- coding: utf-8 -*-
from setuptools import setup

packages = \
['svgpflow',
 'svgpflow.likelihoods',
 'svgpflow.models']

package_data = \
{'': ['*']}

install_requires = \
['gpflow>=2.9.0,<3.0.0',
 'numpy>=1.21.0',
 'tensorflow-probability>=0.12.0',
 'tensorflow>=2.4.0']

extras_require = \
{'test': ['pytest>=6.0.0',
          'scipy>=1.5.0']}

with open("VERSION") as file:
    version = file.read().strip()

with open("README.md") as file:
    long_description = file.read()

setup(
    version=version,
    long_description=long_description,
    long_description_content_type="text/markdown",
    name='svgpflow',
    description='A Tensorflow based library for sparse variational Gaussian processes',
    author='Svgpflow Team',
    author_email=None,
    maintainer=None,
    maintainer_email=None,
    url=None,
    packages=packages,
    package_data=package_data,
    install_requires=install_requires,
    extras_require=extras_require,
    python_requires='>=3.7,<4.0',
    license="Apache License 2.0",
    keywords="Gaussian-processes variational-inference",
    classifiers=[
        "License :: OSI Approved :: Apache Software License",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Operating System :: OS Independent",
        "Topic :: Scientific/Engineering :: Artificial Intelligence",
    ],
)
