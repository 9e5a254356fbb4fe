from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="cloud-cost-optimizer",
    version="0.1.0",
    author="Your Organization",
    author_email="cloud-cost-optimizer@your-org.com",
    description="Multi-cloud cost scanner with concurrent analyzers and report comparison",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/your-org/cloud-cost-optimizer",
    package_dir={"": "src"},
    packages=find_packages("src"),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Environment :: Console",
        "Intended Audience :: System Administrators",
        "Topic :: System :: Systems Administration",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.9",
    install_requires=[
        "boto3>=1.26.0",
        "botocore>=1.29.0",
        "pyyaml>=6.0",
        "click>=8.1.0",
        "pandas>=1.5.0",
        "openpyxl>=3.1.0",
        "tabulate>=0.9.0",
        "python-dateutil>=2.8.0",
        "colorama>=0.4.6",
        "colorlog>=6.7.0",
        "azure-core>=1.26.0",
        "azure-identity>=1.12.0",
        "azure-mgmt-compute>=29.0.0",
        "azure-mgmt-monitor>=6.0.0",
        "azure-mgmt-network>=22.0.0",
        "google-api-core>=2.11.0",
        "google-auth>=2.16.0",
        "google-cloud-compute>=1.10.0",
        "google-cloud-monitoring>=2.14.0",
        "protobuf>=4.21.0",
    ],
    extras_require={
        "dev": [
            "moto>=5.0.0",
            "pytest>=7.2.0",
            "pytest-cov>=4.0.0",
        ]
    },
    entry_points={
        "console_scripts": [
            "cloud-cost-optimizer=cloud_cost_optimizer.cli:cli",
        ],
    },
)
