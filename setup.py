from setuptools import setup

with open('README.rst') as f:
    readme = f.read()

setup(
    name='adb_host',
    version='0.1.0',
    description='A Python client for the ADB server host protocol, with shell, shell v2, and FileSync functionality.',
    long_description=readme,
    keywords=['adb', 'android'],
    packages=['adb_host', 'adb_host.connection'],
    install_requires=['aiofiles>=0.4.0'],
    classifiers=['Operating System :: OS Independent',
                 'License :: OSI Approved :: Apache Software License',
                 'Programming Language :: Python :: 3'],
    test_suite='tests'
)
