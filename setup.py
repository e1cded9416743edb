#!/usr/bin/env python

from setuptools import setup, find_packages

long_description = open("README.rst").read()
install_requires = ['numpy>=1.18.5',
                    'quantities>=0.12.1']
extras_require = {
    'test': ['pytest'],
}
extras_require["all"] = sum(extras_require.values(), [])

with open("dts2uff/version.py") as fp:
    d = {}
    exec(fp.read(), d)
    dts2uff_version = d['version']

setup(
    name="dts2uff",
    version=dts2uff_version,
    packages=find_packages(include=["dts2uff", "dts2uff.*"]),
    install_requires=install_requires,
    extras_require=extras_require,
    author="dts2uff authors and contributors",
    description="Converts DTS SLICEWare test exports (.dts + .chn) into "
                "Universal File Format type 58 datasets",
    long_description=long_description,
    license="BSD-3-Clause",
    python_requires=">=3.9",
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Science/Research',
        'License :: OSI Approved :: BSD License',
        'Natural Language :: English',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3 :: Only',
        'Topic :: Scientific/Engineering']
)
