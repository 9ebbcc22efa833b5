import setuptools

setuptools.setup(
    name="newtimg",
    version="1.0.0",
    author="The Mynewt commiters",
    description=("Build, image creation and run commands for Mynewt "
                 "targets"),
    license="Apache Software License",
    url="http://github.com/apache/mynewt-newt",
    packages=setuptools.find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        'cryptography>=3.1',
        'intelhex>=2.2.1',
        'click',
        'PyYAML',
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": ["newtimg=newtimg.main:newtimg"]
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Development Status :: 4 - Beta",
        "Topic :: Software Development :: Build Tools",
        "License :: OSI Approved :: Apache Software License",
    ],
)
