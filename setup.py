from setuptools import setup, find_packages

setup(
    name="reticulations",
    version="1.0.0",
    description="Turn images and videos into grids of brightness-sized shapes.",
    author="Reticulations",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    install_requires=[
        "opencv-python",
        "Pillow>=9.1",
        "numpy",
        "customtkinter"
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        'console_scripts': [
            'reticulations=reticulations.app:main',
            'reticulations-render=reticulations.cli:main',
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
    python_requires='>=3.9',
)
