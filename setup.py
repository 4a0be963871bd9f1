import os
import re
from setuptools import setup

HERE = os.path.dirname(os.path.abspath(__file__))

with open(os.path.join(HERE, "hdrmerge", "constants.py")) as f:
    VERSION = re.search(r'^VERSION = "([^"]+)"', f.read(), re.M).group(1)

setup(
    name="hdrmerge",
    version=VERSION,
    description="Merge bracketed raw exposures into a single HDR raw image",
    packages=["hdrmerge", "hdrmerge.process", "hdrmerge.utils"],
    python_requires=">=3.8",
    install_requires=[
        "numpy",
        "opencv-python",
        "rawpy",
        "exifread",
        "Pillow",
        "plyer",
    ],
    extras_require={"test": ["pytest"]},
    entry_points={"console_scripts": ["hdrmerge = hdrmerge.cli:main"]},
)
