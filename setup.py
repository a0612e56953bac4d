import setuptools
import os

own_dir = os.path.abspath(os.path.dirname(__file__))


def requirements():
    with open(os.path.join(own_dir, 'requirements.txt')) as f:
        for line in f.readlines():
            line = line.strip()
            if not line or line.startswith('#'):
                continue

            yield line


def packages():
    return setuptools.find_packages(exclude=('test', 'test.*'))


def version():
    with open(os.path.join(own_dir, 'VERSION')) as f:
        return f.read().strip()


setuptools.setup(
    name='changelog-generator',
    version=version(),
    description='Changelog Generator for GitHub and GitLab Repositories',
    python_requires='>=3.11',
    packages=packages(),
    package_data={
        'changelog':[
            'VERSION',
            'templates/*.mako',
        ],
    },
    install_requires=list(requirements()),
    extras_require={
        'test': [
            'pytest',
        ],
    },
    entry_points={
        'console_scripts': [
            'changelog = changelog.cli:main',
        ],
    },
)
