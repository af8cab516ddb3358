#!/usr/bin/env python
# -*- coding: utf-8 -*-
from setuptools import find_packages, setup

# There are problems running setup.py on Windows if the encoding is not set
with open('README.md', encoding='utf8') as readme_file:
    readme = readme_file.read()


setup(
    name='eventship',
    version='0.3.0',
    description="Batches, compresses and ships telemetry events to an ingestion API.",
    long_description=readme,
    long_description_content_type="text/markdown",
    packages=find_packages(include=['eventship', 'eventship.*']),
    include_package_data=True,
    install_requires=[
        'httpx>=0.24',
        'tenacity>=8.0',
        'pydantic>=2.0',
        'pydantic-core>=2.0',
    ],
    extras_require={
        'test': [
            'pytest>=7.0',
        ],
    },
    python_requires=">=3.9",
    license="MIT license",
    zip_safe=False,
    keywords='telemetry events batching',
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: MIT License',
        'Natural Language :: English',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
    ]
)
