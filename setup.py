from setuptools import setup, find_packages
from pathlib import Path

setup(
    name='tinygraph',
    version='0.0.1', 
    packages=find_packages(include=["tinygraph", "tinygraph.*"]),
    author='corranr',
    license='MIT',
    description='reverse-mode autodiff over dense matrices, small enough to train MNIST by hand',
    long_description=(Path(__file__).parent / "README.md").read_text(),
    long_description_content_type="text/markdown",
    python_requires=">=3.8",
    install_requires=["numpy", "tqdm", "networkx"],
    extras_require={
        "testing": ["pytest", "torch"],
        "viz": ["pydot"],
    },
)
