from setuptools import setup, find_packages

setup(
    name="medreminder",
    version="0.1.0",
    packages=find_packages(include=["medreminder", "medreminder.*"]),
    python_requires=">=3.10",
    install_requires=[
        "fastapi",
        "uvicorn",
        "sqlalchemy>=2.0",
        "python-multipart",
        "python-dotenv",
        "pydantic>=2",
        "pydantic-settings>=2.7",
        "pywebpush",
        "prometheus-client",
        "prometheus-fastapi-instrumentator",
    ],
    extras_require={
        "test": [
            "pytest",
            "httpx",
        ],
    },
    entry_points={
        "console_scripts": [
            "medreminder=medreminder.main:run",
        ],
    },
)
