from setuptools import find_packages, setup

setup(
    name='torfetch',
    version='0.1.0',
    description='Retrieve the tor executable and its data files from official Tor Browser releases',
    package_dir={'': 'src'},
    packages=find_packages('src'),
    python_requires='>=3.10',
    install_requires=[
        'aiohttp',
        'aiofiles',
        'rich',
        'PyYAML',
        'platformdirs',
    ],
    extras_require={
        'signature': [
            'python-gnupg',
        ],
        'test': [
            'pytest',
            'pytest-asyncio',
            'pytest-mock',
        ],
    },
)
