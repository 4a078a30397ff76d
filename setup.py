"""
Setup file.
"""

import os

from setuptools import find_packages, setup

URL = "https://github.com/rbforge/rbforge"
KEYWORDS = "ruby gem native extension compiler cross-compile mingw rake-compiler"
HERE = os.path.dirname(os.path.abspath(__file__))


if __name__ == "__main__":
    setup(
        name="rbforge",
        version="0.1.0",
        description="Compile, cross compile and package native Ruby extensions",
        keywords=KEYWORDS,
        url=URL,
        python_requires=">=3.8",
        package_dir={"": "src"},
        packages=find_packages(where="src"),
        install_requires=[
            "PyYAML",
            "tqdm",
        ],
        extras_require={
            "test": ["pytest"],
        },
        entry_points={
            "console_scripts": [
                "rbforge=rbforge.cli:main",
            ],
        },
        include_package_data=True)
