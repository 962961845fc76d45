#!/usr/bin/env python

"""Setup file and install script for Kinnex 16S deconcatenation and demultiplexing"""

import os
import subprocess

import setuptools

VERSION = '2.1.0'

# add version number and git commit hash of the current revision to version.py
try:
    git_run = subprocess.run(['git', 'rev-parse', '--short', 'HEAD'], stdout=subprocess.PIPE,
                             stderr=subprocess.DEVNULL)
    git_run.check_returncode()
except (subprocess.SubprocessError, OSError):
    commit_hash = ''
else:
    commit_hash = git_run.stdout.strip().decode()

here = os.path.dirname(os.path.abspath(__file__))
with open(os.path.join(here, 'kinnex', 'pipeline', 'version.py'), 'w') as version_file:
    version_file.writelines([f'__version__ = "{VERSION}"\n',
                             f'__git_revision__ = "{commit_hash}"\n'])

# external tools (skera, lima, bam2fastq, R for the QC report) are installed via Conda
setuptools.setup(
    name='kinnex-decat-demux',
    version=VERSION,
    description='Resumable deconcatenation and demultiplexing of PacBio Kinnex 16S runs',
    packages=setuptools.find_packages(exclude=['tests', 'tests.*']),
    scripts=['scripts/kinnex_decat_demux.py'],
    python_requires='>=3.8',
    install_requires=[
        'PyYAML',
        'toolz',
        'Logbook',
        'joblib',
    ],
    extras_require={
        'test': ['pytest', 'pytest-mock', 'mock'],
    },
)
