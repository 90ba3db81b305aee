import re

from setuptools import setup

with open('src/signsession/version.py', 'r') as fd:
    __version__ = re.search(r'^__version__\s*=\s*[\'"]([^\'"]*)[\'"]', fd.read(), re.MULTILINE).group(1)


install_requires = [
    "cryptography>=42.0",
    "pydantic>=2.5",
    "PyKCS11>=1.5.12",
    "PyYAML>=6.0",
]

testing_extras = [
    "black",
    "coverage",
    "dnspython>=2.4",
    "isort",
    "mypy",
    "pytest",
    "types-PyYAML",
    "wheel",
]

setup(
    name="signsession",
    version=__version__,
    description="DNSSEC signing key sessions (ZSK/KSK in files or HSMs)",
    classifiers=["Programming Language :: Python :: 3",],
    keywords="dnssec",
    packages=[
        "signsession",
        "signsession.common",
        "signsession.keymaster",
        "signsession.misc",
        "signsession.session",
        "signsession.tools",
    ],
    package_dir={"": "src"},
    python_requires=">=3.11",
    include_package_data=True,
    zip_safe=False,
    install_requires=install_requires,
    extras_require={"testing": testing_extras,},
    entry_points={
        "console_scripts": [
            "signsession = signsession.tools.keysession:main",
        ]
    },
)
