from setuptools import setup, find_packages

setup(
    name='fmd_sharing_filter',
    version='0.1',
    packages=find_packages(exclude=['tests', 'tests.*']),
    python_requires='>=3.8',
    install_requires=[
        'uproot',
        'numpy',
        'hist',
        'awkward',
        'matplotlib',
        'mplhep'
    ],
    extras_require={
        'test': ['pytest'],
    },
    description='Sharing correction of forward multiplicity detector strip signals',
)
