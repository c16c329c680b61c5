from setuptools import setup, find_packages

setup(
    name='release-publisher',
    version='0.1.0',
    package_dir={'': 'src'},
    packages=find_packages(where='src'),
    python_requires='>=3.10',
    install_requires=[
        'aiohttp',
        'aiofiles',
        'boto3',
        'botocore',
        'platformdirs',
        'PyYAML',
        'requests',
        'rich',
    ],
    extras_require={
        'test': [
            'pytest<9',
            'pytest-asyncio',
            'pytest-mock',
        ],
    },
    entry_points={
        'console_scripts': [
            'release-publisher=release_publisher.cli:main',
        ],
    },
)
