# coding: utf-8
from setuptools import find_packages, setup


with open('README.md', encoding='utf8') as file:
    long_description = file.read()

setup(
    name='basic-api-client',
    version='1.0',
    packages=find_packages('src'),
    package_dir={'': 'src'},
    python_requires='>=3.9',
    license='MIT',
    description='Configurable HTTP API client with JSON/XML body handling',
    long_description=long_description,
    long_description_content_type='text/markdown',
    install_requires=[
        'httpx',
        'requests',
        'xmltodict',
        'pydantic>=2',
    ],
    extras_require={
        'test': ['pytest'],
    },
)
