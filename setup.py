from os import path
import io
from setuptools import setup, find_packages

with io.open(path.join(path.abspath(path.dirname(__file__)), 'README.md'), encoding='utf-8') as f:
    long_description = f.read()

setup(
    name = 'remotestorage',
    version = '0.1.0',
    description = 'Versioned per-user document storage for remoteStorage servers',
    long_description=long_description,
    long_description_content_type='text/markdown',
    license = 'GPL',

    packages = find_packages(),

    python_requires = '>=3.8',

    install_requires = [
        'SQLAlchemy>=2.0',
        'gevent',
        'progressbar2',
    ],

    extras_require = {
        'test': ['pytest'],
    },

    entry_points = {
        'console_scripts': [
            'remotestorage = remotestorage.shell:main',
            'remotestorage-recover = remotestorage.scripts.recover:main',
        ],
    }
)
