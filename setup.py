from setuptools import setup, find_packages


setup(
    name="packprompt",
    version="0.1",
    packages=find_packages(include=["packprompt", "packprompt.*"]),
    description="Pack a directory of text files into a single text archive and restore it byte-for-byte.",
    author="reaandrew",
    python_requires=">=3.8",
    install_requires=[],
    entry_points={
        "console_scripts": [
            "packprompt=packprompt.cli:main",
        ]
    },
)
