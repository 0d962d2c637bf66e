"""
Setup del paquete dmg_timer (Timer de la Game Boy con precisión de T-Cycle).

Uso:
    pip install -e .
    pip install -e ".[test]"
"""

from setuptools import setup, find_packages

setup(
    name="dmg-timer",
    version="0.1.0",
    description="Timer de la Game Boy (DIV/TIMA/TMA/TAC) con precisión de T-Cycle",
    packages=find_packages(include=["dmg_timer", "dmg_timer.*"]),
    py_modules=["main"],
    python_requires=">=3.10",
    install_requires=[
        "numpy",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "dmg-timer=main:main",
        ],
    },
    zip_safe=False,
)
