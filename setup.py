from setuptools import setup, find_packages

setup(
    name="batchlearn",
    version="0.1.0",
    description="Memory-bounded batch training, prediction and evaluation of classifiers on CSV datasets.",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.8",
    install_requires=[
        "numpy",
        "tqdm",
        "torch>=1.12",
        "scikit-learn",
    ],
    extras_require={
        "test": ["pytest"],
    },
)
