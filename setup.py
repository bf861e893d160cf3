# -*- coding: utf-8 -*-
"""Install rsapigee

:copyright: Copyright (c) 2026 RadiaSoft LLC.  All Rights Reserved.
:license: http://www.apache.org/licenses/LICENSE-2.0.html
"""
import setuptools


def _requires():
    return [
        "pykern",
        "tornado",
        "urllib3",
    ]


setuptools.setup(
    name="rsapigee",
    version="20261017.0",
    description="Package and deploy API proxies and shared flows",
    author="RadiaSoft LLC",
    author_email="pip@pykern.org",
    install_requires=_requires(),
    extras_require={
        "test": [
            "pytest>=2.7",
            "pytest-asyncio",
        ],
    },
    packages=setuptools.find_packages(include=("rsapigee", "rsapigee.*")),
    entry_points={
        "console_scripts": [
            "rsapigee=rsapigee.rsapigee_console:main",
        ],
    },
    license="http://www.apache.org/licenses/LICENSE-2.0.html",
    url="http://pykern.org",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: Apache Software License",
        "Natural Language :: English",
        "Programming Language :: Python",
        "Topic :: Internet :: WWW/HTTP",
        "Topic :: Utilities",
    ],
)
