from setuptools import setup, find_packages

setup(
    name="crm-audience-rules",
    version="0.1",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        'requests>=2.31.0',
        'SQLAlchemy>=2.0.19',
        'python-dateutil>=2.8.2',
        'python-dotenv>=1.0.0',
        'pydantic>=2.6.1',
        'PyJWT>=2.8.0',
        'structlog>=23.1.0',
    ],
    extras_require={
        'test': ['pytest>=7.4.0'],
    },
)
