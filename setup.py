#!/usr/bin/env python
from setuptools import setup, find_packages

with open("README.md", "r") as fh:
    long_description = fh.read()

setup(
    name='ldap-phonebook',
    version='0.8.0',
    description='An organizational phonebook for LDAP directories',
    long_description=long_description,
    long_description_content_type="text/markdown",
    keywords=['ldap', 'phonebook', 'directory'],
    packages=find_packages(exclude=['bin']),
    include_package_data=True,
    python_requires='>=3.10',
    install_requires=[
        'ldap_filter',
        'python-ldap',
        'typer',
    ],
    extras_require={
        'test': [
            'pytest',
            'python-ldap-faker',
        ],
    },
    entry_points={
        'console_scripts': [
            'ldap-phonebook = ldap_phonebook.cli:app',
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3"
    ],
)
