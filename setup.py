# -*- coding: utf-8 -*-
from setuptools import setup, find_packages
from os.path import abspath, dirname, join

this_dir = abspath(dirname(__file__))
with open(join(this_dir, "LICENSE")) as f:
    license = f.read()

with open(join(this_dir, "README.md"), encoding="utf-8") as file:
    long_description = file.read()

with open(join(this_dir, "requirements.txt")) as f:
    requirements = [line for line in f.read().split("\n") if line.strip()]

setup(
        name="selfisolation",
        version="1.0",
        description="Isolation state engine for a contact-tracing application.",
        long_description_content_type='text/markdown',
        long_description=long_description,
        author="selfisolation developers",
        license="MIT license",
        install_requires=requirements,
        extras_require={"test": ["pytest"]},
        packages=find_packages(exclude=["docs", "test_selfisolation*"]),
        package_data={
            "selfisolation": ["configs/*.yaml", "configs/defaults/isolation/*.yaml"]
        },
        include_package_data=True
)
