from setuptools import setup

setup(
    name='sentgen',
    version='0.1.0',
    packages=['sentgen'],
    package_dir={'': 'src'},
    package_data={'sentgen': ['resources/.sentgenrc']},
    python_requires='>=3.10',
    install_requires=[
        'frozendict>=2.3',
        'returns>=0.19',
        'toml>=0.10',
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': ['sentgen=sentgen.cli:main'],
    },
    license='GNU GPLv3',
    author='Dominic Steinhoefel',
    author_email='dominic.steinhoefel@cispa.de',
    description='Random sentence generation from context-free grammar files'
)
