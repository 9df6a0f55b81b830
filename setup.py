"""Build helper for npuref.

Pure-Python package; the only runtime dependency is NumPy.  The golden
vector generator is run as a module::

    pip install -e .[test]
    python -m npuref.vector_gen --output-dir build/hex
"""

from setuptools import setup, find_packages


setup(
    name="npuref",
    version="0.1.0",
    description="Bit-exact golden reference model and hex vector generator "
                "for an INT8 NPU GeMV/GeMM datapath",
    packages=find_packages(include=["npuref", "npuref.*"]),
    python_requires=">=3.8",
    install_requires=["numpy>=1.17"],
    extras_require={"test": ["pytest>=7"]},
)
