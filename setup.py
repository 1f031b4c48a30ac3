from setuptools import setup, find_packages

setup(
    name="azure-batch-pod-provider",
    version="0.1.0",
    description="Run Kubernetes pods as Azure Batch tasks",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "azure-batch>=14.0.0,<15",
        "azure-identity>=1.12.0",
        "msrest>=0.7.1",
        "kubernetes>=28.1.0,<32",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
        ],
    },
    python_requires=">=3.9",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
