import os
from setuptools import setup, find_packages

base_dir = os.path.dirname(__file__)
install_requires = [line.rstrip() for line in open(os.path.join(base_dir, 'requirements.txt'))]

setup(
    name = 'easyverein_membership',
    version = '1.0.1',
    packages = find_packages(exclude=['tests', 'tests.*']),
    install_requires = install_requires,
    extras_require = {
        'test': ['mock', 'pytest']
    },
    include_package_data = True
)
