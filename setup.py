from setuptools import setup, find_packages

setup(
    name="block_editor",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "pyyaml",
        "textual",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "block-editor=block_editor.cli:main",
        ],
    },
    author="Uday Kanth",
    description="Fuzzy SEARCH/REPLACE block editing for LLM-written diffs.",
)
