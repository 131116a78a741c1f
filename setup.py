from setuptools import setup
about = {}
with open("phototimefix/__version__.py") as f:
    exec(f.read(), about)


setup(
    name="phototimefix",
    version=about["__version__"],
    description="Reconstructs shot times for photos and videos: orders files by modification time, interpolates missing shot times between EXIF/filename anchors, writes missing EXIF dates and syncs filesystem times.",
    author="gabbro246",
    packages=["phototimefix"],
    install_requires=[
        "piexif",
        "Pillow>=9.4",
        "colorama",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "fixtimes=phototimefix.fixtimes:main",
        ]
    },
    include_package_data=True,
    python_requires=">=3.10",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
)
