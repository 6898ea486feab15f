"""
Setup configuration for Mandarin Anki Generator.
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="mandarin-anki-generator",
    version="0.1.0",
    author="Mandarin Anki Generator Team",
    description="Anki flashcards with translations, readings and audio from Mandarin sentences and words",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["mandarin_anki_generator", "mandarin_anki_generator.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Education",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
    ],
    python_requires=">=3.8",
    install_requires=[
        "genanki>=0.13.0",
        "requests>=2.28.0",
        "tenacity>=8.0.0",
        "openai>=1.0.0",
        "pypinyin>=0.49.0",
        "jieba>=0.42.1",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "hypothesis>=6.0.0",
            "httpx>=0.23.0",
            "black>=22.0.0",
            "flake8>=4.0.0",
            "mypy>=0.950",
        ],
    },
    entry_points={
        "console_scripts": [
            "mandarin-anki-generator=mandarin_anki_generator.main:main",
        ],
    },
)
