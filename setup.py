from setuptools import find_packages, setup  # noqa

extras_require = {
    "test": [
        "pytest",
    ],
}

__version__ = "0.0.0+develop"

setup(
    name="spacectl",
    version=__version__,
    maintainer="spacectl Contributors",
    packages=find_packages(
        include=["spacectl", "spacectl.*"],
        exclude=["docs", "tests*"],
    ),
    include_package_data=True,
    description="Build images on a remote BuildKit daemon and manage platform namespaces",
    long_description=open("README.md", encoding="utf-8").read(),
    long_description_content_type="text/markdown",
    entry_points={
        "console_scripts": [
            "spacectl=spacectl.clis.main:main",
            "docker-credential-spacectl=spacectl.buildkit.credential_helper:main",
        ]
    },
    install_requires=[
        # Please maintain an alphabetical order in the following list
        "click>=6.6,<9.0",
        "docker>=6.0.0",
        "grpcio",
        "keyring>=18.0.1",
        "mashumaro>=3.9.1",
        "protobuf>=4.22.0",
        "python-json-logger>=2.0.0",
        "requests>=2.18.4,<3.0.0",
        "rich",
        "rich_click",
    ],
    extras_require=extras_require,
    license="apache2",
    python_requires=">=3.9",
    classifiers=[
        "Intended Audience :: Developers",
        "License :: OSI Approved :: Apache Software License",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Software Development",
        "Topic :: Software Development :: Build Tools",
    ],
)
