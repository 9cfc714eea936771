from setuptools import setup, find_packages
from pathlib import Path

package_name = 'redpanda-operator'
description = (
    'A Kubernetes Operator for deploying Redpanda clusters from Cluster '
    'custom resources.'
)
author = 'Vectorized, Inc.'
author_email = 'support@vectorized.io'
license = 'BSL'
url = 'https://github.com/vectorizedio/redpanda'
version = '0.1.0'
pypi_classifiers = [
    'Development Status :: 3 - Alpha',
    'Programming Language :: Python :: 3.10'
]
keywords = ['redpanda', 'kafka', 'kubernetes', 'operator']
readme = Path(__file__).parent / 'README.rst'

# Core dependencies
install_requires = [
    'kopf>=1.35',
    'kubernetes>=24.2.0',
    'pyyaml>=6.0',
    'structlog>=21.1.0',
]

# Test dependencies
tests_require = [
    'pytest>=7.0',
]
tests_require += install_requires

# Lint dependencies
lint_require = [
    'flake8>=6.0',
]

# Optional dependencies (like for dev)
extras_require = {
    'test': tests_require,
    # For development environments
    'dev': tests_require + lint_require
}

setup(
    name=package_name,
    version=version,
    description=description,
    long_description=readme.read_text(),
    author=author,
    author_email=author_email,
    url=url,
    license=license,
    classifiers=pypi_classifiers,
    keywords=keywords,
    package_dir={'': 'src'},
    packages=find_packages('src', exclude=['docs', 'tests']),
    python_requires='>=3.10',
    install_requires=install_requires,
    extras_require=extras_require,
    include_package_data=True
)
