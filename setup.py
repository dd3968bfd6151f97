from setuptools import find_packages
from setuptools import setup


extras_require = {
    "test": [
        "opentelemetry-sdk>=1.0,<2.0",
        "opentelemetry-test-utils",
        "pytest>=6.0",
    ],
}

setup(
    name="flagcore",
    description="client-side evaluation core for feature flags and experiments",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    license="BSD",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "opentelemetry-api>=1.0,<2.0",
        "prometheus-client>=0.12.0",
        "python-json-logger>=2.0,<3.0",
    ],
    extras_require=extras_require,
    package_data={"flagcore": ["py.typed"]},
    zip_safe=False,
    classifiers=[
        "Development Status :: 4 - Beta",
        "License :: OSI Approved :: BSD License",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Topic :: Software Development :: Libraries",
    ],
)
