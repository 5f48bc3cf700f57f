from setuptools import setup, find_packages

with open("README.md", "r") as readme_file:
    readme = readme_file.read()

requirements = ["numpy", "scipy"]

setup(
    name="VNKernel",
    version="0.1.0",
    author="Christian Konstantinov",
    author_email="christian.konstantinov98@gmail.com",
    description="Velvet noise generators, sparse kernels and extrapolation",
    long_description=readme,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests"]),
    install_requires=requirements,
    extras_require={"test": ["pytest"]},
    python_requires=">=3.11",
    classifiers=[
        "Programming Language :: Python :: 3.12",
    ],
)
