#!/usr/bin/env python3

import os
import re
from setuptools import setup

# Utility function to read the README file.
# Used for the long_description.


def read(fname):
    with open(os.path.join(os.path.dirname(__file__), fname)) as fh:
        return fh.read()


def find_version(source):
    version_file = read(source)
    version_match = re.search(r"^__VERSION__ = ['\"]([^'\"]*)['\"]", version_file, re.M)
    if version_match:
        return version_match.group(1)
    raise RuntimeError("Unable to find version string.")


NAME = 'entab'

setup(
    version=find_version('entab/__init__.py'),
    name=NAME,
    description='Terminal browser for homework and circulars on the Entab CampusCare parent portal',
    author='The entab authors',
    packages=['entab', 'entab.tui'],
    license='GPLv2+',
    long_description=read('README.rst'),
    long_description_content_type='text/x-rst',
    keywords=['entab', 'campuscare', 'tui', 'homework'],
    install_requires=[
        'requests>=2.24,<3.0',
        'rich>=13.0',
        'textual>=0.80',
    ],
    extras_require={
        'test': [
            'pytest>=7.0',
        ],
    },
    python_requires='>=3.8',
    entry_points={
        'console_scripts': [
            'entab=entab.command:cmd'
        ],
    },
)
